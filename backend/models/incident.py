"""
Incident Model - recordable incidents used for frequency and lost-time rates

  incident_date          → window column (and year bucket for trends)
  injury_type            → "None" when no injury was sustained
  related_to             → "Work" or "Study"
  lost_work_days         → days away from work, drives severity rates
"""
from models.database import db


class Incident(db.Model):
    __tablename__ = 'incidents'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    incident_date = db.Column(db.DateTime, nullable=False, index=True)
    severity = db.Column(db.String(20))
    injury_type = db.Column(db.String(50), default='None', nullable=False)
    medical_treatment_provided = db.Column(db.Boolean, default=False, nullable=False)
    related_to = db.Column(db.String(10), default='Work', nullable=False)
    lost_work_days = db.Column(db.Integer, default=0, nullable=False)
    location = db.Column(db.String(100), index=True)
    department = db.Column(db.String(100), index=True)
