# Initial schema for fee balances and finance documents

import decimal
import django.core.validators
import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('education', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Fee',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('fee_balance', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), help_text='Outstanding balance; positive withholds the exam card', max_digits=12)),
                ('total_paid', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.00'))])),
                ('semester_fee', models.DecimalField(decimal_places=2, default=decimal.Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(decimal.Decimal('0.00'))])),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('student', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='fee', to='education.student')),
            ],
            options={
                'db_table': 'fees',
            },
        ),
        migrations.CreateModel(
            name='Finance',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('statement', models.CharField(blank=True, max_length=200, null=True)),
                ('statement_url', models.CharField(blank=True, max_length=1000, null=True)),
                ('receipt_url', models.CharField(blank=True, max_length=1000, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='finance_records', to='education.student')),
            ],
            options={
                'db_table': 'finance',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['student', 'created_at'], name='finance_student_created_idx')],
            },
        ),
    ]
