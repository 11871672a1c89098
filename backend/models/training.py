"""
Training Models - scheduled trainings and their participants
"""
from datetime import datetime

from models.database import db


class Training(db.Model):
    __tablename__ = 'trainings'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(50))
    is_mandatory = db.Column(db.Boolean, default=False, nullable=False)
    scheduled_end_date = db.Column(db.DateTime)
    location = db.Column(db.String(100), index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    participants = db.relationship('TrainingParticipant', back_populates='training', lazy='select')


class TrainingParticipant(db.Model):
    __tablename__ = 'training_participants'

    id = db.Column(db.Integer, primary_key=True)
    training_id = db.Column(db.Integer, db.ForeignKey('trainings.id'), nullable=False, index=True)
    participant_name = db.Column(db.String(255), nullable=False)
    department = db.Column(db.String(100), index=True)
    status = db.Column(db.String(30), nullable=False)
    certificate_expiry_date = db.Column(db.DateTime)

    training = db.relationship('Training', back_populates='participants')
