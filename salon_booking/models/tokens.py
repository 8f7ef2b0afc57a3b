import hashlib
from salon_booking import db
from salon_booking.models.base import new_id, utcnow


def token_digest(token):
    """Tokens are only ever stored as SHA-256 digests"""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


class RefreshToken(db.Model):
    __tablename__ = 'refresh_tokens'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    token_hash = db.Column(db.String(64), unique=True, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    revoked_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def __init__(self, user_id, token, expires_at):
        self.user_id = user_id
        self.token_hash = token_digest(token)
        self.expires_at = expires_at

    def is_usable(self, now=None):
        now = now or utcnow()
        return self.revoked_at is None and self.expires_at > now

    def __repr__(self):
        return f'<RefreshToken {self.user_id} expires {self.expires_at}>'


class PasswordResetToken(db.Model):
    __tablename__ = 'password_reset_tokens'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    token_hash = db.Column(db.String(64), unique=True, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime, nullable=True)
    revoked_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def __init__(self, user_id, token, expires_at):
        self.user_id = user_id
        self.token_hash = token_digest(token)
        self.expires_at = expires_at

    def is_pending(self, now=None):
        now = now or utcnow()
        return self.used_at is None and self.revoked_at is None and self.expires_at > now

    def __repr__(self):
        return f'<PasswordResetToken {self.user_id} expires {self.expires_at}>'
