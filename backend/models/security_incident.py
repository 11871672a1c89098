"""
Security Incident Model - physical and information security events
"""
from models.database import db


class SecurityIncident(db.Model):
    __tablename__ = 'security_incidents'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    incident_type = db.Column(db.String(50), nullable=False, index=True)
    severity = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(30), nullable=False)
    incident_datetime = db.Column(db.DateTime, nullable=False, index=True)
    location = db.Column(db.String(100), index=True)
    department = db.Column(db.String(100), index=True)
