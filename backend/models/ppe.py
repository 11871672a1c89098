"""
PPE Model - protective equipment items and their current assignment
"""
from models.database import db


class PPEItem(db.Model):
    __tablename__ = 'ppe_items'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(100))
    status = db.Column(db.String(30), nullable=False, index=True)  # Available / Assigned / Retired
    condition = db.Column(db.String(30), nullable=False)  # New / Good / Damaged / Expired
    assigned_to = db.Column(db.String(255))
    assigned_at = db.Column(db.DateTime, index=True)
    expiry_date = db.Column(db.DateTime)
    location = db.Column(db.String(100), index=True)
    department = db.Column(db.String(100), index=True)  # department of the assignee
