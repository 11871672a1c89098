"""
Audit Models - audits and their findings (non-conformities)
"""
from datetime import datetime

from models.database import db


class Audit(db.Model):
    __tablename__ = 'audits'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(50), nullable=False, index=True)
    status = db.Column(db.String(30), nullable=False)
    location = db.Column(db.String(100), index=True)
    department = db.Column(db.String(100), index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    findings = db.relationship('AuditFinding', back_populates='audit', lazy='select')


class AuditFinding(db.Model):
    __tablename__ = 'audit_findings'

    id = db.Column(db.Integer, primary_key=True)
    audit_id = db.Column(db.Integer, db.ForeignKey('audits.id'), nullable=False, index=True)
    severity = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(30), nullable=False)
    corrective_action_required = db.Column(db.Boolean, default=False, nullable=False)

    audit = db.relationship('Audit', back_populates='findings')
