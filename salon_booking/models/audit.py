import json

from salon_booking import db
from salon_booking.models.base import utcnow
from salon_booking.utils.json_utils import AuditEncoder


class AuditLog(db.Model):
    """Who changed what, written beside the change it describes"""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True)
    timestamp = db.Column(db.DateTime, default=utcnow, index=True)
    action = db.Column(db.String(50), nullable=False)
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(36), nullable=True)
    details = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(50), nullable=True)
    request_id = db.Column(db.String(64), nullable=True)

    @staticmethod
    def encode_details(details):
        # Decimals and datetimes in details come from appointment snapshots
        if isinstance(details, (dict, list)):
            return json.dumps(details, cls=AuditEncoder)
        return details

    def __repr__(self):
        return f'<AuditLog {self.action} {self.entity_type}:{self.entity_id} by {self.user_id}>'
