# Generated manually for the civic complaint platform: complaints, images, votes, status ledger

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('in_progress', 'In Progress'),
    ('resolved', 'Resolved'),
    ('closed', 'Closed'),
    ('rejected', 'Rejected'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ComplaintSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('period', models.CharField(max_length=6, unique=True, verbose_name='Period (YYYYMM)')),
                ('last_value', models.PositiveIntegerField(default=0, verbose_name='Last Issued Value')),
            ],
            options={
                'verbose_name': 'Complaint Sequence',
                'verbose_name_plural': 'Complaint Sequences',
            },
        ),
        migrations.CreateModel(
            name='Complaint',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('human_id', models.CharField(editable=False, max_length=20, unique=True, verbose_name='Complaint ID')),
                ('title', models.CharField(max_length=100, verbose_name='Title')),
                ('description', models.TextField(max_length=2000, verbose_name='Description')),
                ('category', models.CharField(
                    choices=[
                        ('pothole', 'Pothole'),
                        ('garbage', 'Garbage'),
                        ('water_leakage', 'Water Leakage'),
                        ('street_light', 'Street Light'),
                        ('electricity', 'Electricity'),
                        ('drainage', 'Drainage'),
                        ('road_damage', 'Road Damage'),
                        ('illegal_construction', 'Illegal Construction'),
                        ('noise_pollution', 'Noise Pollution'),
                        ('other', 'Other'),
                    ],
                    max_length=30,
                    verbose_name='Category',
                )),
                ('address', models.CharField(max_length=300, verbose_name='Address')),
                ('latitude', models.DecimalField(
                    decimal_places=6,
                    max_digits=9,
                    validators=[
                        django.core.validators.MinValueValidator(-90),
                        django.core.validators.MaxValueValidator(90),
                    ],
                    verbose_name='Latitude',
                )),
                ('longitude', models.DecimalField(
                    decimal_places=6,
                    max_digits=9,
                    validators=[
                        django.core.validators.MinValueValidator(-180),
                        django.core.validators.MaxValueValidator(180),
                    ],
                    verbose_name='Longitude',
                )),
                ('landmark', models.CharField(blank=True, default='', max_length=200, verbose_name='Landmark')),
                ('status', models.CharField(choices=STATUS_CHOICES, default='pending', max_length=20, verbose_name='Status')),
                ('priority', models.CharField(
                    choices=[
                        ('low', 'Low'),
                        ('medium', 'Medium'),
                        ('high', 'High'),
                        ('urgent', 'Urgent'),
                    ],
                    default='medium',
                    max_length=10,
                    verbose_name='Priority',
                )),
                ('assigned_at', models.DateTimeField(blank=True, null=True, verbose_name='Assigned At')),
                ('resolution_notes', models.TextField(blank=True, default='', verbose_name='Resolution Notes')),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resolved At')),
                ('upvotes', models.PositiveIntegerField(default=0, verbose_name='Upvotes')),
                ('downvotes', models.PositiveIntegerField(default=0, verbose_name='Downvotes')),
                ('view_count', models.PositiveIntegerField(default=0, verbose_name='View Count')),
                ('is_public', models.BooleanField(default=True, verbose_name='Public')),
                ('assigned_to', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='assigned_complaints',
                    to=settings.AUTH_USER_MODEL,
                    verbose_name='Assigned To',
                )),
                ('reported_by', models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name='reported_complaints',
                    to=settings.AUTH_USER_MODEL,
                    verbose_name='Reported By',
                )),
                ('resolved_by', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='resolved_complaints',
                    to=settings.AUTH_USER_MODEL,
                    verbose_name='Resolved By',
                )),
            ],
            options={
                'verbose_name': 'Complaint',
                'verbose_name_plural': 'Complaints',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['status', '-created_at'], name='complaint_status_created_idx'),
                    models.Index(fields=['category', '-created_at'], name='complaint_category_created_idx'),
                    models.Index(fields=['reported_by', '-created_at'], name='complaint_reporter_created_idx'),
                    models.Index(fields=['assigned_to', 'status'], name='complaint_assignee_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ComplaintImage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(
                    choices=[('report', 'Report'), ('resolution', 'Resolution')],
                    default='report',
                    max_length=20,
                    verbose_name='Kind',
                )),
                ('url', models.CharField(max_length=500, verbose_name='URL')),
                ('blob_id', models.CharField(max_length=500, verbose_name='Blob ID')),
                ('uploaded_at', models.DateTimeField(auto_now_add=True, verbose_name='Uploaded At')),
                ('complaint', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='images',
                    to='complaints.complaint',
                    verbose_name='Complaint',
                )),
            ],
            options={
                'verbose_name': 'Complaint Image',
                'verbose_name_plural': 'Complaint Images',
                'ordering': ['uploaded_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='ComplaintVote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('direction', models.CharField(
                    choices=[('up', 'Upvote'), ('down', 'Downvote')],
                    max_length=4,
                    verbose_name='Direction',
                )),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('complaint', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='votes',
                    to='complaints.complaint',
                    verbose_name='Complaint',
                )),
                ('voter', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='complaint_votes',
                    to=settings.AUTH_USER_MODEL,
                    verbose_name='Voter',
                )),
            ],
            options={
                'verbose_name': 'Complaint Vote',
                'verbose_name_plural': 'Complaint Votes',
                'constraints': [
                    models.UniqueConstraint(fields=('complaint', 'voter'), name='unique_vote_per_voter'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StatusUpdate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated At')),
                ('status', models.CharField(choices=STATUS_CHOICES, max_length=20, verbose_name='Status')),
                ('previous_status', models.CharField(
                    blank=True,
                    choices=STATUS_CHOICES,
                    max_length=20,
                    null=True,
                    verbose_name='Previous Status',
                )),
                ('comment', models.TextField(blank=True, default='', max_length=1000, verbose_name='Comment')),
                ('images', models.JSONField(blank=True, default=list, verbose_name='Images')),
                ('is_public', models.BooleanField(default=True, verbose_name='Public')),
                ('complaint', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='status_updates',
                    to='complaints.complaint',
                    verbose_name='Complaint',
                )),
                ('updated_by', models.ForeignKey(
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='complaint_status_updates',
                    to=settings.AUTH_USER_MODEL,
                    verbose_name='Updated By',
                )),
            ],
            options={
                'verbose_name': 'Status Update',
                'verbose_name_plural': 'Status Updates',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
