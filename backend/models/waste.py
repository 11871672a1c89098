"""
Waste Report Model - waste generation and disposal records
"""
from models.database import db


class WasteReport(db.Model):
    __tablename__ = 'waste_reports'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(50), nullable=False, index=True)
    disposal_status = db.Column(db.String(30), nullable=False)
    generated_date = db.Column(db.DateTime, nullable=False, index=True)
    spill_reported = db.Column(db.Boolean, default=False, nullable=False)
    reduction_initiative = db.Column(db.Boolean, default=False, nullable=False)
    location = db.Column(db.String(100), index=True)
    department = db.Column(db.String(100), index=True)
