# Generated manually for prescriptions, refill and transfer requests

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import backend.core.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Prescription',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_name', models.CharField(blank=True, max_length=255)),
                ('patient_email', models.EmailField(blank=True, max_length=254)),
                ('patient_phone', models.CharField(blank=True, max_length=50)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('request_type', models.CharField(choices=[('standard', 'Standard'), ('refill', 'Refill'), ('transfer', 'Transfer')], default='standard', max_length=20)),
                ('medication', models.CharField(max_length=255)),
                ('dosage', models.CharField(blank=True, max_length=255)),
                ('instructions', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('completed', 'Completed')], default='pending', max_length=20)),
                ('pharmacy_name', models.CharField(blank=True, max_length=255)),
                ('pharmacy_phone', models.CharField(blank=True, max_length=50)),
                ('file', models.FileField(blank=True, null=True, upload_to=backend.core.validators.prescription_upload_path)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='prescriptions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'prescriptions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_prescription_status'),
                    models.Index(fields=['request_type'], name='idx_prescription_type'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RefillRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_name', models.CharField(blank=True, max_length=255)),
                ('patient_email', models.EmailField(blank=True, max_length=254)),
                ('patient_phone', models.CharField(blank=True, max_length=50)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('medication', models.CharField(max_length=255)),
                ('dosage', models.CharField(max_length=255)),
                ('prescription_number', models.CharField(blank=True, max_length=100)),
                ('quantity', models.PositiveIntegerField(default=30, validators=[django.core.validators.MinValueValidator(1)])),
                ('urgency', models.CharField(choices=[('normal', 'Normal'), ('urgent', 'Urgent')], default='normal', max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('completed', 'Completed'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('admin_notes', models.TextField(blank=True)),
                ('notified', models.BooleanField(default=False)),
                ('requested_date', models.DateTimeField(auto_now_add=True)),
                ('completed_date', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('prescription', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='refill_requests', to='prescriptions.prescription')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='refill_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'refill_requests',
                'ordering': ['-requested_date'],
                'indexes': [
                    models.Index(fields=['status'], name='idx_refill_status'),
                    models.Index(fields=['urgency'], name='idx_refill_urgency'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TransferRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_name', models.CharField(blank=True, max_length=255)),
                ('patient_email', models.EmailField(blank=True, max_length=254)),
                ('patient_phone', models.CharField(blank=True, max_length=50)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('current_pharmacy', models.CharField(max_length=255)),
                ('current_pharmacy_phone', models.CharField(blank=True, max_length=50)),
                ('to_pharmacy', models.CharField(blank=True, max_length=255)),
                ('medications', models.JSONField(default=list)),
                ('prescription_number', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_progress', 'In Progress'), ('completed', 'Completed'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('admin_notes', models.TextField(blank=True)),
                ('notified', models.BooleanField(default=False)),
                ('requested_date', models.DateTimeField(auto_now_add=True)),
                ('completed_date', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transfer_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'transfer_requests',
                'ordering': ['-requested_date'],
                'indexes': [models.Index(fields=['status'], name='idx_transfer_status')],
            },
        ),
    ]
