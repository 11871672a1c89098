"""
Health Incident Model - occupational health events and surveillance records
"""
from models.database import db


class HealthIncident(db.Model):
    __tablename__ = 'health_incidents'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(50), nullable=False, index=True)
    incident_datetime = db.Column(db.DateTime, nullable=False, index=True)
    required_hospitalization = db.Column(db.Boolean, default=False, nullable=False)
    notification_sent = db.Column(db.Boolean, default=False, nullable=False)
    preventive_action_taken = db.Column(db.Boolean, default=False, nullable=False)
    location = db.Column(db.String(100), index=True)
    department = db.Column(db.String(100), index=True)
