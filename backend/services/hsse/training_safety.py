"""
Aggregator: Training Safety

Participation in safety trainings created inside the window. A training is a
safety training when its category is SafetyTraining or its title mentions
"safety" or "hse". Counts are per participant; department scope applies to the
participant, location scope to the training.

- overdue: not completed and the training's scheduled end already passed
- certification_expiries: completed participants whose certificate expires
  within the next 30 days
"""

from datetime import timedelta

from sqlalchemy import func, or_

from constants import (
    INCIDENCE_EMPTY_RATE,
    PARTICIPANT_STATUS_COMPLETED,
    SAFETY_TRAINING_TITLE_MARKERS,
    TIER_EXTENDED,
    TRAINING_CATEGORY_SAFETY,
)
from models.training import Training, TrainingParticipant
from schemas.hsse_report import TrainingSafety
from services.hsse.base import AggregatorSpec, apply_scope, count_if, percentage


def is_safety_training():
    title = func.lower(Training.title)
    return or_(
        Training.category == TRAINING_CATEGORY_SAFETY,
        *[title.like(f"%{marker}%") for marker in SAFETY_TRAINING_TITLE_MARKERS]
    )


def compute(ctx) -> TrainingSafety:
    completed = TrainingParticipant.status == PARTICIPANT_STATUS_COMPLETED
    expiry_horizon = ctx.now + timedelta(days=ctx.settings.certification_expiry_window_days)

    query = ctx.session.query(
        func.count(TrainingParticipant.id).label('total'),
        count_if(completed).label('completed'),
        count_if(~completed & (Training.scheduled_end_date < ctx.now)).label('overdue'),
        count_if(
            completed
            & (TrainingParticipant.certificate_expiry_date >= ctx.now)
            & (TrainingParticipant.certificate_expiry_date <= expiry_horizon)
        ).label('expiring'),
        count_if(Training.is_mandatory.is_(True)).label('mandatory'),
        count_if(Training.is_mandatory.is_(True) & completed).label('mandatory_completed'),
    ).select_from(TrainingParticipant).join(Training, TrainingParticipant.training_id == Training.id)
    query = query.filter(is_safety_training())
    row = apply_scope(
        query, ctx.filter, Training.created_at, TrainingParticipant.department, Training.location
    ).one()

    total, done = int(row.total), int(row.completed)
    mandatory, mandatory_done = int(row.mandatory), int(row.mandatory_completed)
    return TrainingSafety(
        total_safety_trainings=total,
        completed_trainings=done,
        completion_rate=percentage(done, total, INCIDENCE_EMPTY_RATE),
        overdue_trainings=int(row.overdue),
        certification_expiries=int(row.expiring),
        mandatory_trainings=mandatory,
        mandatory_completed=mandatory_done,
        mandatory_completion_rate=percentage(mandatory_done, mandatory, INCIDENCE_EMPTY_RATE),
    )


SPEC = AggregatorSpec(
    slot='training_safety',
    title='Training Safety',
    tier=TIER_EXTENDED,
    compute=compute,
)
