"""
Hazard Models - hazard register and its mitigation actions

Column notes:
  created_at       → reporting window column for every hazard aggregator
  category         → free-text category name ("Near Miss", "Chemical", ...)
  severity         → one of constants.HAZARD_SEVERITY_SCALE
  status           → Reported / UnderAssessment / ... / Resolved / Closed
  location         → site; department → owning department

Lifecycle (creation, assessment, closure) is owned by the hazard register.
These models are read-only from the dashboard's perspective.
"""
from datetime import datetime

from models.database import db


class Hazard(db.Model):
    __tablename__ = 'hazards'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(100))  # NULL = uncategorised
    severity = db.Column(db.String(20), nullable=False, index=True)
    status = db.Column(db.String(30), nullable=False, index=True)
    location = db.Column(db.String(100), index=True)
    department = db.Column(db.String(100), index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    mitigation_actions = db.relationship(
        'HazardMitigationAction', back_populates='hazard', lazy='select'
    )

    def __repr__(self):
        return f"<Hazard {self.id} {self.title!r} {self.status}>"


class HazardMitigationAction(db.Model):
    __tablename__ = 'hazard_mitigation_actions'

    id = db.Column(db.Integer, primary_key=True)
    hazard_id = db.Column(db.Integer, db.ForeignKey('hazards.id'), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(30), nullable=False)
    priority = db.Column(db.String(20))
    assigned_to = db.Column(db.String(255))
    target_date = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    hazard = db.relationship('Hazard', back_populates='mitigation_actions')
