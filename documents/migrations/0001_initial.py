# Initial schema for the student document log and the per-type document tables

import django.db.models.deletion
import django.utils.timezone
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('education', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='StudentDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('registration_number', models.CharField(db_index=True, max_length=50)),
                ('document_type', models.CharField(choices=[('exam-card', 'Exam Card'), ('fees-structure', 'Fees Structure'), ('fees-statement', 'Fees Statement'), ('fees-receipt', 'Fees Receipt'), ('results', 'Results'), ('timetable', 'Timetable'), ('photo', 'Photo')], max_length=30)),
                ('file_url', models.CharField(max_length=1000)),
                ('file_name', models.CharField(max_length=255)),
                ('file_size', models.PositiveIntegerField()),
                ('storage_method', models.CharField(choices=[('remote', 'Remote bucket'), ('local', 'Local disk')], max_length=10)),
                ('uploaded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'student_documents',
                'ordering': ['-uploaded_at', '-id'],
                'indexes': [models.Index(fields=['registration_number', 'document_type'], name='documents_reg_type_idx')],
            },
        ),
        migrations.CreateModel(
            name='ExamCard',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('file_url', models.CharField(max_length=1000)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='exam_cards', to='education.student')),
            ],
            options={
                'db_table': 'exam_cards',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='ResultRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('semester', models.CharField(max_length=50)),
                ('result_data', models.JSONField(default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='results', to='education.student')),
            ],
            options={
                'db_table': 'results',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Timetable',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('course', models.CharField(max_length=100)),
                ('semester', models.CharField(max_length=50)),
                ('timetable_url', models.CharField(blank=True, max_length=1000, null=True)),
                ('timetable_data', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('student', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='timetables', to='education.student')),
            ],
            options={
                'db_table': 'timetables',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['course', 'semester'], name='timetables_course_sem_idx')],
            },
        ),
    ]
