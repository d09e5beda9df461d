from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='RoomType',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(choices=[('Value', 'Value'), ('Standard', 'Standard'), ('Deluxe', 'Deluxe'), ('Superior', 'Superior'), ('Suite', 'Suite')], max_length=20, unique=True)),
                ('slug', models.SlugField(unique=True)),
                ('tagline', models.CharField(blank=True, max_length=255)),
                ('description', models.TextField(blank=True)),
                ('capacity', models.CharField(blank=True, max_length=50)),
                ('rate_3h', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('rate_6h', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('rate_12h', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('rate_24h', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
            ],
            options={
                'ordering': ['rate_3h'],
            },
        ),
        migrations.CreateModel(
            name='Room',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.CharField(max_length=10, unique=True)),
                ('status', models.CharField(choices=[('Available', 'Available'), ('Occupied', 'Occupied'), ('Dirty', 'Dirty'), ('Maintenance', 'Maintenance')], default='Available', max_length=12)),
                ('lock_expires_at', models.DateTimeField(blank=True, null=True)),
                ('lock_token', models.CharField(blank=True, max_length=255)),
                ('room_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='rooms', to='bookings.roomtype')),
            ],
            options={
                'ordering': ['number'],
            },
        ),
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference_code', models.CharField(max_length=40, unique=True)),
                ('checkout_session_id', models.CharField(blank=True, max_length=255)),
                ('check_in', models.DateTimeField()),
                ('check_out', models.DateTimeField()),
                ('duration_hours', models.PositiveSmallIntegerField()),
                ('adults', models.PositiveSmallIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(4)])),
                ('children', models.PositiveSmallIntegerField(default=0, validators=[django.core.validators.MaxValueValidator(2)])),
                ('child_ages', models.JSONField(blank=True, default=list)),
                ('source', models.CharField(choices=[('Web', 'Web'), ('Walk_in', 'Walk In')], default='Web', max_length=10)),
                ('status', models.CharField(choices=[('Pending_Payment', 'Pending Payment'), ('Confirmed', 'Confirmed'), ('Checked_In', 'Checked In'), ('Completed', 'Completed'), ('Cancelled', 'Cancelled')], default='Pending_Payment', max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('guest', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='reservations', to=settings.AUTH_USER_MODEL)),
                ('room', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='bookings.room')),
            ],
            options={
                'ordering': ['-check_in'],
                'indexes': [
                    models.Index(fields=['room', 'status'], name='bookings_re_room_id_3f1a2c_idx'),
                    models.Index(fields=['status', 'created_at'], name='bookings_re_status_8d4e7b_idx'),
                ],
            },
        ),
    ]
