# Initial schema for students, units and unit allocations

import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid
from django.conf import settings
from django.db import migrations, models

import education.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='CustomUser',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('admin', 'Administrator'), ('registrar', 'Registrar'), ('accounts_officer', 'Accounts Officer')], default='admin', max_length=20)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'db_table': 'users',
                'ordering': ['username'],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('registration_number', models.CharField(help_text='May contain slashes, e.g. CS/001/2021', max_length=50, unique=True)),
                ('name', models.CharField(max_length=200)),
                ('course', models.CharField(max_length=200)),
                ('level_of_study', models.CharField(max_length=50)),
                ('national_id', models.CharField(blank=True, max_length=50, null=True)),
                ('birth_certificate', models.CharField(blank=True, max_length=50, null=True)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('password', models.CharField(blank=True, help_text='Hashed password for student login', max_length=128)),
                ('photo_url', models.CharField(blank=True, max_length=1000, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('deregistered', 'Deregistered'), ('on_leave', 'On Academic Leave')], default='active', max_length=20)),
                ('academic_leave', models.BooleanField(default=False)),
                ('academic_leave_start', models.DateField(blank=True, null=True)),
                ('academic_leave_end', models.DateField(blank=True, null=True)),
                ('academic_leave_reason', models.TextField(blank=True, null=True)),
                ('deregistered', models.BooleanField(default=False)),
                ('deregistration_date', models.DateField(blank=True, null=True)),
                ('deregistration_reason', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'students',
                'ordering': ['registration_number'],
                'indexes': [
                    models.Index(fields=['status'], name='students_status_idx'),
                    models.Index(fields=['course', 'level_of_study'], name='students_course_level_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Unit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('unit_name', models.CharField(max_length=200)),
                ('unit_code', models.CharField(max_length=50, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'units',
                'ordering': ['unit_code'],
            },
        ),
        migrations.CreateModel(
            name='RegisteredUnit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('unit_name', models.CharField(max_length=200)),
                ('unit_code', models.CharField(max_length=50)),
                ('status', models.CharField(default='registered', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='registered_units', to='education.student')),
            ],
            options={
                'db_table': 'registered_units',
                'ordering': ['unit_code'],
                'unique_together': {('student', 'unit_code')},
            },
        ),
        migrations.CreateModel(
            name='AllocatedUnit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('semester', models.IntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(2)])),
                ('academic_year', models.CharField(default='2024/2025', help_text='Academic year in format YYYY/YYYY (e.g., 2024/2025)', max_length=20, validators=[education.models.validate_academic_year_format])),
                ('status', models.CharField(choices=[('allocated', 'Allocated'), ('registered', 'Registered'), ('cancelled', 'Cancelled')], default='allocated', max_length=20)),
                ('active', models.BooleanField(default=True, editable=False, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('allocated_at', models.DateTimeField(auto_now_add=True)),
                ('allocated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='allocations_made', to=settings.AUTH_USER_MODEL)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocated_units', to='education.student')),
                ('unit', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='education.unit')),
            ],
            options={
                'db_table': 'allocated_units',
                'ordering': ['semester', 'unit__unit_code'],
                'indexes': [
                    models.Index(fields=['student', 'status'], name='alloc_student_status_idx'),
                    models.Index(fields=['student', 'academic_year', 'semester'], name='alloc_student_term_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('student', 'unit', 'semester', 'academic_year', 'active'), name='unique_active_allocation'),
                    models.CheckConstraint(condition=models.Q(('semester__in', [1, 2])), name='allocation_semester_range'),
                    models.CheckConstraint(condition=models.Q(models.Q(('active__isnull', True), ('status', 'cancelled')), models.Q(models.Q(('status', 'cancelled'), _negated=True), ('active__isnull', False), ('active', True)), _connector='OR'), name='allocation_active_matches_status'),
                ],
            },
        ),
    ]
