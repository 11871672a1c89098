"""
HSSERollup Model - Stores pre-aggregated, time-bucketed domain statistics as JSON

One row per (domain, period, period_start, department, location, category).
Rows are written by an out-of-band refresh job; the dashboard engine only reads them.
"""
from models.database import db
from datetime import datetime
import json


class HSSERollup(db.Model):
    __tablename__ = 'hsse_rollups'
    __table_args__ = (
        db.UniqueConstraint(
            'domain', 'period', 'period_start', 'department', 'location', 'category',
            name='uq_hsse_rollup_bucket'
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    domain = db.Column(db.String(50), nullable=False, index=True)
    period = db.Column(db.String(10), nullable=False)  # 'month' or 'year'
    period_start = db.Column(db.Date, nullable=False, index=True)
    department = db.Column(db.String(100))
    location = db.Column(db.String(100))
    category = db.Column(db.String(100))
    metrics = db.Column(db.Text, nullable=False)  # JSON stored as TEXT
    computed_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    row_count = db.Column(db.Integer)  # Number of source records rolled up

    def get_metrics(self):
        """Parse the metrics JSON, returns {} if the payload is unreadable"""
        value = self.metrics
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                return {}
            return parsed if isinstance(parsed, dict) else {}
        return value or {}

    def __repr__(self):
        return f"<HSSERollup {self.domain} {self.period} {self.period_start}>"
