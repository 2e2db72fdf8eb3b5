# Generated manually for decisions app

import uuid
import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Decision',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('PLANNING', 'Planning'), ('VOTING', 'Voting'), ('CONFIRMED', 'Confirmed'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled')], default='PLANNING', max_length=20)),
                ('consensus_threshold', models.PositiveSmallIntegerField(default=60, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('voting_enabled', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'decisions',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', 'created_at'], name='decision_status_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='Option',
            fields=[
                ('position', models.PositiveIntegerField(editable=False)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('label', models.CharField(max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('decision', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='options', to='decisions.decision')),
            ],
            options={
                'db_table': 'decision_options',
                'ordering': ['position'],
            },
        ),
        migrations.AddField(
            model_name='decision',
            name='final_option',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.RESTRICT, related_name='+', to='decisions.option'),
        ),
        migrations.CreateModel(
            name='Participant',
            fields=[
                ('position', models.PositiveIntegerField(editable=False)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('user_ref', models.CharField(blank=True, max_length=64, null=True)),
                ('guest_ref', models.CharField(blank=True, max_length=64, null=True)),
                ('display_name', models.CharField(blank=True, max_length=100)),
                ('is_mandatory', models.BooleanField(default=False)),
                ('rsvp_status', models.CharField(choices=[('PENDING', 'Pending'), ('GOING', 'Going'), ('MAYBE', 'Maybe'), ('NOT_GOING', 'Not going')], default='PENDING', max_length=20)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('joined_at', models.DateTimeField(auto_now_add=True)),
                ('decision', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='participants', to='decisions.decision')),
            ],
            options={
                'db_table': 'decision_participants',
                'ordering': ['position'],
                'indexes': [models.Index(fields=['decision', 'is_mandatory'], name='participant_mandatory_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('guest_ref__isnull', True), ('user_ref__isnull', False)), models.Q(('guest_ref__isnull', False), ('user_ref__isnull', True)), _connector='OR'), name='participant_exactly_one_identity'),
                    models.UniqueConstraint(fields=('decision', 'user_ref'), name='unique_user_participant'),
                    models.UniqueConstraint(fields=('decision', 'guest_ref'), name='unique_guest_participant'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Vote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('value', models.SmallIntegerField(choices=[(0, 'No'), (1, 'Yes'), (2, 'Maybe')])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('decision', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='votes', to='decisions.decision')),
                ('option', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='votes', to='decisions.option')),
                ('participant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='votes', to='decisions.participant')),
            ],
            options={
                'db_table': 'decision_votes',
                'indexes': [models.Index(fields=['option', 'value'], name='vote_option_value_idx')],
                'unique_together': {('option', 'participant')},
            },
        ),
        migrations.CreateModel(
            name='TimeOption',
            fields=[
                ('position', models.PositiveIntegerField(editable=False)),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('starts_at', models.DateTimeField()),
                ('ends_at', models.DateTimeField(blank=True, null=True)),
                ('label', models.CharField(blank=True, max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('decision', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='time_options', to='decisions.decision')),
            ],
            options={
                'db_table': 'decision_time_options',
                'ordering': ['position'],
            },
        ),
        migrations.CreateModel(
            name='TimeVote',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('participant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='time_votes', to='decisions.participant')),
                ('time_option', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='votes', to='decisions.timeoption')),
            ],
            options={
                'db_table': 'decision_time_votes',
                'unique_together': {('time_option', 'participant')},
            },
        ),
        migrations.CreateModel(
            name='DecisionMessage',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('SYSTEM', 'System')], default='SYSTEM', max_length=20)),
                ('content', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('decision', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='decisions.decision')),
            ],
            options={
                'db_table': 'decision_messages',
                'ordering': ['created_at'],
            },
        ),
    ]
