from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ('journeys', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='QueueStatistics',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('department_code', models.CharField(max_length=20)),
                ('date', models.DateField()),
                ('hour', models.PositiveSmallIntegerField()),
                ('day_of_week', models.PositiveSmallIntegerField()),
                ('avg_wait_time', models.FloatField()),
                ('max_wait_time', models.PositiveIntegerField()),
                ('min_wait_time', models.PositiveIntegerField()),
                ('total_patients', models.PositiveIntegerField(default=1)),
                ('avg_service_time', models.PositiveIntegerField(default=15)),
                ('weather_condition', models.CharField(blank=True, max_length=50, null=True)),
                ('is_holiday', models.BooleanField(default=False)),
                ('special_events', models.TextField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('hospital', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='queue_statistics', to='journeys.hospital')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['hospital', 'department_code', 'hour', 'day_of_week'], name='queue_stats_slot_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('hospital', 'department_code', 'date', 'hour'), name='queue_stats_unique_bucket'),
                    models.CheckConstraint(condition=models.Q(('hour__lte', 23)), name='queue_stats_hour_range'),
                    models.CheckConstraint(condition=models.Q(('day_of_week__lte', 6)), name='queue_stats_day_range'),
                ],
            },
        ),
    ]
