"""initial schema: profiles, plan templates, workout sessions, check-ins

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Profiles
    op.create_table(
        'coach_profile',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )

    # Plan templates (client_profile references plan, so plan comes first)
    op.create_table(
        'plan',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('coach_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('duration_weeks', sa.Integer(), nullable=False),
        sa.Column('workouts_per_week', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['coach_id'], ['coach_profile.id'], ),
        sa.CheckConstraint('duration_weeks >= 1', name='ck_plan_duration_positive'),
    )
    op.create_index('ix_plan_coach_id', 'plan', ['coach_id'])

    op.create_table(
        'client_profile',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('display_name', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('active_plan_id', sa.Uuid(as_uuid=True), nullable=True),
        sa.Column('plan_start_date', sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(['active_plan_id'], ['plan.id'], ),
        sa.CheckConstraint(
            '(active_plan_id IS NULL AND plan_start_date IS NULL) OR '
            '(active_plan_id IS NOT NULL AND plan_start_date IS NOT NULL)',
            name='ck_client_profile_plan_assignment',
        ),
    )

    op.create_table(
        'coach_client_relationship',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('coach_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('client_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('status', sa.Text(), server_default='ACTIVE', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['coach_id'], ['coach_profile.id'], ),
        sa.ForeignKeyConstraint(['client_id'], ['client_profile.id'], ),
        sa.UniqueConstraint('coach_id', 'client_id', name='uq_coach_client_pair'),
    )
    op.create_index('ix_coach_client_relationship_coach_id', 'coach_client_relationship', ['coach_id'])

    op.create_table(
        'week',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('plan_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('week_number', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['plan_id'], ['plan.id'], ),
        sa.UniqueConstraint('plan_id', 'week_number', name='uq_week_plan_number'),
    )

    op.create_table(
        'day',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('week_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=False),
        sa.Column('is_rest_day', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('name', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['week_id'], ['week.id'], ),
        sa.UniqueConstraint('week_id', 'day_number', name='uq_day_week_number'),
        sa.CheckConstraint('day_number BETWEEN 1 AND 7', name='ck_day_number_range'),
    )

    op.create_table(
        'exercise_definition',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('instructions', sa.Text(), nullable=True),
    )

    op.create_table(
        'scheduled_exercise',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('day_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('exercise_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('sets', sa.Integer(), nullable=False),
        sa.Column('reps', sa.Text(), nullable=True),
        sa.Column('weight', sa.Text(), nullable=True),
        sa.Column('rest_seconds', sa.Integer(), nullable=True),
        sa.Column('coach_notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['day_id'], ['day.id'], ),
        sa.ForeignKeyConstraint(['exercise_id'], ['exercise_definition.id'], ),
        sa.UniqueConstraint('day_id', 'order_index', name='uq_scheduled_exercise_day_order'),
        sa.CheckConstraint('sets >= 0', name='ck_scheduled_exercise_sets_non_negative'),
    )

    # Workout sessions
    op.create_table(
        'workout_completion',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('client_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('plan_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('day_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('status', sa.Text(), server_default='IN_PROGRESS', nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completion_pct', sa.Float(), server_default='0', nullable=False),
        sa.Column('exercises_done', sa.Integer(), server_default='0', nullable=False),
        sa.Column('exercises_total', sa.Integer(), server_default='0', nullable=False),
        sa.Column('duration_sec', sa.Integer(), nullable=True),
        sa.Column('effort_rating', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['client_id'], ['client_profile.id'], ),
        sa.ForeignKeyConstraint(['plan_id'], ['plan.id'], ),
        sa.ForeignKeyConstraint(['day_id'], ['day.id'], ),
        sa.UniqueConstraint('client_id', 'plan_id', 'day_id', name='uq_workout_completion_client_plan_day'),
        sa.CheckConstraint('completion_pct >= 0 AND completion_pct <= 1', name='ck_workout_completion_pct_range'),
    )
    op.create_index(
        'ix_workout_completion_client_completed_at', 'workout_completion', ['client_id', 'completed_at']
    )

    op.create_table(
        'set_completion',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('workout_completion_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('scheduled_exercise_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('set_number', sa.Integer(), nullable=False),
        sa.Column('completed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('actual_weight', sa.Float(), nullable=True),
        sa.Column('actual_reps', sa.Integer(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['workout_completion_id'], ['workout_completion.id'], ),
        sa.ForeignKeyConstraint(['scheduled_exercise_id'], ['scheduled_exercise.id'], ),
        sa.UniqueConstraint(
            'workout_completion_id', 'scheduled_exercise_id', 'set_number',
            name='uq_set_completion_session_exercise_set',
        ),
    )

    op.create_table(
        'exercise_flag',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('workout_completion_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('scheduled_exercise_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('flagged_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['workout_completion_id'], ['workout_completion.id'], ),
        sa.ForeignKeyConstraint(['scheduled_exercise_id'], ['scheduled_exercise.id'], ),
        sa.UniqueConstraint('workout_completion_id', 'scheduled_exercise_id', name='uq_exercise_flag_session_exercise'),
    )

    # Check-ins
    op.create_table(
        'check_in',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('coach_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('client_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('status', sa.Text(), server_default='PENDING', nullable=False),
        sa.Column('source', sa.Text(), server_default='COACH', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('effort_rating', sa.Text(), nullable=True),
        sa.Column('pain_blockers', sa.Text(), nullable=True),
        sa.Column('client_feeling', sa.Text(), nullable=True),
        sa.Column('client_responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('coach_feedback', sa.Text(), nullable=True),
        sa.Column('plan_adjustment', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('coach_responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['coach_id'], ['coach_profile.id'], ),
        sa.ForeignKeyConstraint(['client_id'], ['client_profile.id'], ),
    )
    op.create_index('ix_check_in_pair_status', 'check_in', ['coach_id', 'client_id', 'status'])
    op.create_index('ix_check_in_client_status', 'check_in', ['client_id', 'status'])

    op.create_table(
        'check_in_schedule',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('coach_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('client_id', sa.Uuid(as_uuid=True), nullable=False),
        sa.Column('status', sa.Text(), server_default='ACTIVE', nullable=False),
        sa.Column('cadence_days', sa.Integer(), server_default='7', nullable=False),
        sa.Column('anchor_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['coach_id'], ['coach_profile.id'], ),
        sa.ForeignKeyConstraint(['client_id'], ['client_profile.id'], ),
        sa.UniqueConstraint('coach_id', 'client_id', name='uq_check_in_schedule_pair'),
    )


def downgrade() -> None:
    op.drop_table('check_in_schedule')
    op.drop_index('ix_check_in_client_status', table_name='check_in')
    op.drop_index('ix_check_in_pair_status', table_name='check_in')
    op.drop_table('check_in')
    op.drop_table('exercise_flag')
    op.drop_table('set_completion')
    op.drop_index('ix_workout_completion_client_completed_at', table_name='workout_completion')
    op.drop_table('workout_completion')
    op.drop_table('scheduled_exercise')
    op.drop_table('exercise_definition')
    op.drop_table('day')
    op.drop_table('week')
    op.drop_index('ix_coach_client_relationship_coach_id', table_name='coach_client_relationship')
    op.drop_table('coach_client_relationship')
    op.drop_table('client_profile')
    op.drop_index('ix_plan_coach_id', table_name='plan')
    op.drop_table('plan')
    op.drop_table('coach_profile')
