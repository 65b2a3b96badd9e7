# Generated migration for VisitorAttribution, FinalizedLead and PendingLead models

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='VisitorAttribution',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('anonymous_id', models.CharField(db_index=True, max_length=255)),
                ('widget_visitor_id', models.CharField(max_length=255, unique=True)),
                ('session_key', models.CharField(blank=True, db_index=True, max_length=255, null=True)),
                ('widget_user_id', models.CharField(blank=True, max_length=255, null=True)),
                ('widget_session_id', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_source', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_medium', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_campaign', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_term', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_content', models.CharField(blank=True, max_length=255, null=True)),
                ('gclid', models.CharField(blank=True, max_length=255, null=True)),
                ('fbclid', models.CharField(blank=True, max_length=255, null=True)),
                ('referrer', models.TextField(blank=True, null=True)),
                ('landing_page', models.TextField(blank=True, null=True)),
                ('page_url', models.TextField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('ip_address', models.CharField(blank=True, max_length=64, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-updated_at'],
            },
        ),
        migrations.CreateModel(
            name='FinalizedLead',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lead_id', models.CharField(max_length=255, unique=True)),
                ('anonymous_id', models.CharField(db_index=True, max_length=255)),
                ('widget_visitor_id', models.CharField(db_index=True, max_length=255)),
                ('session_key', models.CharField(blank=True, max_length=255, null=True)),
                ('first_name', models.CharField(blank=True, max_length=255, null=True)),
                ('last_name', models.CharField(blank=True, max_length=255, null=True)),
                ('email', models.CharField(blank=True, max_length=255, null=True)),
                ('phone', models.CharField(blank=True, max_length=64, null=True)),
                ('street', models.CharField(blank=True, max_length=255, null=True)),
                ('city', models.CharField(blank=True, max_length=255, null=True)),
                ('state', models.CharField(blank=True, max_length=64, null=True)),
                ('zip_code', models.CharField(blank=True, max_length=32, null=True)),
                ('vehicle_year', models.IntegerField(blank=True, null=True)),
                ('vehicle_make', models.CharField(blank=True, max_length=255, null=True)),
                ('vehicle_model', models.CharField(blank=True, max_length=255, null=True)),
                ('vehicle_trim', models.CharField(blank=True, max_length=255, null=True)),
                ('vehicle_vin', models.CharField(blank=True, max_length=64, null=True)),
                ('vehicle_stock', models.CharField(blank=True, max_length=64, null=True)),
                ('vehicle_status', models.CharField(blank=True, max_length=32, null=True)),
                ('monthly_payment', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('down_payment', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('total_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('trade_in_year', models.IntegerField(blank=True, null=True)),
                ('trade_in_make', models.CharField(blank=True, max_length=255, null=True)),
                ('trade_in_model', models.CharField(blank=True, max_length=255, null=True)),
                ('trade_in_vin', models.CharField(blank=True, max_length=64, null=True)),
                ('trade_in_value', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('trade_in_mileage', models.IntegerField(blank=True, null=True)),
                ('utm_source', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_medium', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_campaign', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_term', models.CharField(blank=True, max_length=255, null=True)),
                ('utm_content', models.CharField(blank=True, max_length=255, null=True)),
                ('gclid', models.CharField(blank=True, max_length=255, null=True)),
                ('fbclid', models.CharField(blank=True, max_length=255, null=True)),
                ('referrer', models.TextField(blank=True, null=True)),
                ('landing_page', models.TextField(blank=True, null=True)),
                ('lead_type', models.CharField(blank=True, max_length=255, null=True)),
                ('lead_source', models.CharField(blank=True, max_length=255, null=True)),
                ('request_date', models.DateTimeField(blank=True, null=True)),
                ('comments', models.TextField(blank=True, null=True)),
                ('raw_document', models.TextField(blank=True, null=True)),
                ('forwarded', models.BooleanField(db_index=True, default=False)),
                ('forwarded_at', models.DateTimeField(blank=True, null=True)),
                ('processed_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-processed_at'],
            },
        ),
        migrations.CreateModel(
            name='PendingLead',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lead_id', models.CharField(db_index=True, max_length=255)),
                ('session_key', models.CharField(blank=True, db_index=True, max_length=255, null=True)),
                ('failure_reason', models.CharField(choices=[('NoSessionKey', 'No session key'), ('NoMatchingAttribution', 'No matching attribution')], db_index=True, max_length=32)),
                ('email_subject', models.TextField(blank=True, null=True)),
                ('email_from', models.CharField(blank=True, max_length=255, null=True)),
                ('email_body', models.TextField(blank=True, null=True)),
                ('lead_data', models.JSONField()),
                ('error_message', models.TextField(blank=True, null=True)),
                ('retry_count', models.PositiveIntegerField(default=0)),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
