"""
Inspection Models - site inspections and the findings raised against them
"""
from datetime import datetime

from models.database import db


class Inspection(db.Model):
    __tablename__ = 'inspections'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(50), nullable=False, index=True)
    status = db.Column(db.String(30), nullable=False)
    inspector_name = db.Column(db.String(255))
    location = db.Column(db.String(100), index=True)
    department = db.Column(db.String(100), index=True)  # inspector's department
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    findings = db.relationship('InspectionFinding', back_populates='inspection', lazy='select')


class InspectionFinding(db.Model):
    __tablename__ = 'inspection_findings'

    id = db.Column(db.Integer, primary_key=True)
    inspection_id = db.Column(db.Integer, db.ForeignKey('inspections.id'), nullable=False, index=True)
    severity = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(30), nullable=False)
    corrective_action = db.Column(db.Text)  # NULL = no corrective action raised

    inspection = db.relationship('Inspection', back_populates='findings')
