# Generated manually for review notifications

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('notifications', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='notification',
            name='type',
            field=models.CharField(choices=[('order', 'Order'), ('appointment', 'Appointment'), ('prescription', 'Prescription'), ('refill', 'Refill Request'), ('transfer', 'Transfer Request'), ('contact', 'Contact Form'), ('inventory', 'Inventory'), ('review', 'Review'), ('payment', 'Payment'), ('system', 'System')], default='system', max_length=50),
        ),
    ]
