from django.conf import settings
import django.contrib.auth.models
import django.contrib.auth.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import journeys.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
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
                ('role', models.CharField(choices=[('patient', 'Patient'), ('doctor', 'Doctor'), ('staff', 'Hospital staff'), ('admin', 'Administrator')], default='patient', max_length=10)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Hospital',
            fields=[
                ('id', models.CharField(default=journeys.models.new_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('code', models.CharField(max_length=20, unique=True)),
                ('address', models.CharField(blank=True, max_length=255)),
                ('city', models.CharField(blank=True, db_index=True, max_length=100)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('type', models.CharField(choices=[('government', 'Government'), ('private', 'Private'), ('trust', 'Trust')], default='government', max_length=20)),
                ('open_time', models.CharField(default='08:00', max_length=5)),
                ('close_time', models.CharField(default='20:00', max_length=5)),
                ('has_emergency', models.BooleanField(default=True)),
                ('has_pharmacy', models.BooleanField(default=True)),
                ('has_lab', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='PatientProfile',
            fields=[
                ('id', models.CharField(default=journeys.models.new_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ('full_name', models.CharField(blank=True, max_length=255)),
                ('phone', models.CharField(blank=True, db_index=True, max_length=20)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='patient_profile', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='Department',
            fields=[
                ('id', models.CharField(default=journeys.models.new_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('code', models.CharField(blank=True, max_length=20)),
                ('type', models.CharField(choices=[('registration', 'Registration'), ('consultation', 'Consultation'), ('diagnostic', 'Diagnostic'), ('pharmacy', 'Pharmacy'), ('billing', 'Billing'), ('emergency', 'Emergency'), ('other', 'Other')], default='other', max_length=20)),
                ('floor', models.IntegerField(default=0)),
                ('wing', models.CharField(blank=True, max_length=50, null=True)),
                ('avg_service_time', models.PositiveIntegerField(default=15, help_text='Average service time (minutes)')),
                ('current_queue', models.PositiveIntegerField(default=0)),
                ('max_capacity', models.PositiveIntegerField(default=50)),
                ('is_open', models.BooleanField(db_index=True, default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('hospital', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='departments', to='journeys.hospital')),
            ],
            options={
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('current_queue__gte', 0)), name='department_queue_non_negative'),
                    models.CheckConstraint(condition=models.Q(('avg_service_time__gt', 0)), name='department_service_time_positive'),
                    models.CheckConstraint(condition=models.Q(('max_capacity__gt', 0)), name='department_capacity_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Journey',
            fields=[
                ('id', models.CharField(default=journeys.models.new_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ('token_number', models.CharField(max_length=40, unique=True)),
                ('visit_type', models.CharField(default='opd', max_length=20)),
                ('chief_complaint', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('paused', 'Paused')], db_index=True, default='active', max_length=20)),
                ('progress_percent', models.PositiveSmallIntegerField(default=0)),
                ('estimated_total_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('actual_total_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('started_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('hospital', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='journeys', to='journeys.hospital')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='journeys', to='journeys.patientprofile')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['hospital', 'created_at'], name='journey_hospital_created_idx'),
                    models.Index(fields=['patient', 'status'], name='journey_patient_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('progress_percent__lte', 100)), name='journey_progress_max_100'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Checkpoint',
            fields=[
                ('id', models.CharField(default=journeys.models.new_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ('sequence', models.PositiveIntegerField()),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_queue', 'In queue'), ('in_progress', 'In progress'), ('completed', 'Completed'), ('skipped', 'Skipped')], db_index=True, default='pending', max_length=20)),
                ('queue_position', models.PositiveIntegerField(blank=True, null=True)),
                ('estimated_wait_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('actual_wait_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('actual_service_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('arrived_at', models.DateTimeField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('department', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='checkpoints', to='journeys.department')),
                ('journey', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='checkpoints', to='journeys.journey')),
            ],
            options={
                'ordering': ['journey', 'sequence'],
                'indexes': [
                    models.Index(fields=['department', 'status'], name='checkpoint_dept_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('journey', 'sequence'), name='checkpoint_unique_sequence'),
                ],
            },
        ),
        migrations.AddField(
            model_name='journey',
            name='current_checkpoint',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='journeys.checkpoint'),
        ),
        migrations.CreateModel(
            name='CheckpointTransition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_status', models.CharField(blank=True, max_length=20, null=True)),
                ('to_status', models.CharField(max_length=20)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('checkpoint', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transitions', to='journeys.checkpoint')),
                ('operator', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='checkpoint_transitions', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='JourneyShare',
            fields=[
                ('id', models.CharField(default=journeys.models.new_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ('shared_with_phone', models.CharField(blank=True, max_length=20, null=True)),
                ('shared_with_email', models.EmailField(blank=True, max_length=254, null=True)),
                ('share_type', models.CharField(default='view', max_length=20)),
                ('access_code', models.CharField(db_index=True, max_length=6)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('notify_on_update', models.BooleanField(default=True)),
                ('notify_via_whatsapp', models.BooleanField(default=True)),
                ('notify_via_sms', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('journey', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shares', to='journeys.journey')),
            ],
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=64)),
                ('object_type', models.CharField(blank=True, max_length=64, null=True)),
                ('object_id', models.CharField(blank=True, max_length=64, null=True)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
                    models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
                ],
            },
        ),
    ]
