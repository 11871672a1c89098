"""
Work Permit Model - permits to work (hot work, confined space, ...)
"""
from datetime import datetime

from models.database import db


class WorkPermit(db.Model):
    __tablename__ = 'work_permits'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(50), nullable=False, index=True)
    status = db.Column(db.String(30), nullable=False, index=True)
    planned_end_date = db.Column(db.DateTime)
    safety_induction_completed = db.Column(db.Boolean, default=False, nullable=False)
    location = db.Column(db.String(100), index=True)
    department = db.Column(db.String(100), index=True)  # requesting department
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
