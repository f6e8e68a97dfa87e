# Generated manually for the civic complaint platform: notifications and blob cleanup queue

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('kind', models.CharField(
                    choices=[
                        ('status_update', 'Status Update'),
                        ('assignment', 'Assignment'),
                        ('reminder', 'Reminder'),
                        ('system', 'System'),
                        ('mention', 'Mention'),
                    ],
                    default='system',
                    max_length=20,
                    verbose_name='Kind',
                )),
                ('title', models.CharField(max_length=255, verbose_name='Title')),
                ('message', models.TextField(verbose_name='Message')),
                ('reference', models.CharField(
                    blank=True,
                    default='',
                    help_text='Human-readable id of the related object, e.g. CMP-202610-0001.',
                    max_length=30,
                    verbose_name='Reference',
                )),
                ('action_url', models.CharField(blank=True, default='', max_length=255, verbose_name='Action URL')),
                ('is_read', models.BooleanField(default=False, verbose_name='Read')),
                ('read_at', models.DateTimeField(blank=True, null=True, verbose_name='Read At')),
                ('object_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='Related Object ID')),
                ('content_type', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.CASCADE,
                    to='contenttypes.contenttype',
                    verbose_name='Related Content Type',
                )),
                ('recipient', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='notifications',
                    to=settings.AUTH_USER_MODEL,
                    verbose_name='Recipient',
                )),
            ],
            options={
                'verbose_name': 'Notification',
                'verbose_name_plural': 'Notifications',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['recipient', 'is_read'], name='notif_recipient_read_idx'),
                    models.Index(fields=['content_type', 'object_id'], name='notification_object_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PendingBlobDeletion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('blob_id', models.CharField(max_length=500, verbose_name='Blob ID')),
                ('attempts', models.PositiveIntegerField(default=1, verbose_name='Attempts')),
                ('last_error', models.TextField(blank=True, default='', verbose_name='Last Error')),
            ],
            options={
                'verbose_name': 'Pending Blob Deletion',
                'verbose_name_plural': 'Pending Blob Deletions',
                'ordering': ['created_at'],
            },
        ),
    ]
