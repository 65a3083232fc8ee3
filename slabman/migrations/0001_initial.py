"""
Initial migration for Slabman models.
"""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import slabman.models.slab


class Migration(migrations.Migration):
    """Create Slabman models: Slab, SlabTransition."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Slab',
            fields=[
                ('id', models.CharField(default=slabman.models.slab.new_slab_id, editable=False, max_length=64, primary_key=True, serialize=False, verbose_name='ID')),
                ('serial_number', models.CharField(db_index=True, max_length=100, verbose_name='Serial Number')),
                ('material', models.CharField(max_length=100, verbose_name='Material')),
                ('color', models.CharField(blank=True, default='', max_length=100, verbose_name='Color')),
                ('thickness', models.PositiveIntegerField(default=20, verbose_name='Thickness')),
                ('length', models.PositiveIntegerField(default=3200, verbose_name='Length')),
                ('width', models.PositiveIntegerField(default=1600, verbose_name='Width')),
                ('supplier', models.CharField(blank=True, default='', max_length=200, verbose_name='Supplier')),
                ('status', models.CharField(choices=[('WANTED', 'Wanted'), ('ORDERED', 'Ordered'), ('RECEIVED', 'Received'), ('STOCK', 'In Stock'), ('ALLOCATED', 'Allocated'), ('CONSUMED', 'Consumed'), ('REMNANT', 'Remnant')], db_index=True, default='WANTED', max_length=20, verbose_name='Status')),
                ('slab_type', models.CharField(choices=[('FULL', 'Full'), ('REMNANT', 'Remnant')], default='FULL', max_length=20, verbose_name='Slab Type')),
                ('job_id', models.CharField(blank=True, db_index=True, max_length=100, null=True, verbose_name='Job')),
                ('received_date', models.DateTimeField(blank=True, null=True, verbose_name='Received Date')),
                ('consumed_date', models.DateTimeField(blank=True, null=True, verbose_name='Consumed Date')),
                ('notes', models.TextField(blank=True, null=True, verbose_name='Notes')),
                ('cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name='Cost')),
                ('location', models.CharField(blank=True, max_length=100, null=True, verbose_name='Location')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Slab',
                'verbose_name_plural': 'Slabs',
                'ordering': ['serial_number'],
                'indexes': [models.Index(fields=['status', 'material'], name='slabman_sla_status_5c1e0a_idx')],
            },
        ),
        migrations.CreateModel(
            name='SlabTransition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_status', models.CharField(choices=[('WANTED', 'Wanted'), ('ORDERED', 'Ordered'), ('RECEIVED', 'Received'), ('STOCK', 'In Stock'), ('ALLOCATED', 'Allocated'), ('CONSUMED', 'Consumed'), ('REMNANT', 'Remnant')], max_length=20, verbose_name='From')),
                ('to_status', models.CharField(choices=[('WANTED', 'Wanted'), ('ORDERED', 'Ordered'), ('RECEIVED', 'Received'), ('STOCK', 'In Stock'), ('ALLOCATED', 'Allocated'), ('CONSUMED', 'Consumed'), ('REMNANT', 'Remnant')], max_length=20, verbose_name='To')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Reason')),
                ('actor', models.CharField(blank=True, default='', max_length=150, verbose_name='Actor')),
                ('batch_id', models.CharField(blank=True, db_index=True, default='', max_length=64, verbose_name='Batch')),
                ('slab', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transitions', to='slabman.slab', verbose_name='Slab')),
            ],
            options={
                'verbose_name': 'Transition',
                'verbose_name_plural': 'Transitions',
                'ordering': ['timestamp', 'pk'],
                'indexes': [models.Index(fields=['slab', 'timestamp'], name='slabman_sla_slab_id_8d2f4b_idx')],
            },
        ),
    ]
