from salon_booking import db
from salon_booking.models.base import new_id, utcnow


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    services = db.relationship('Service', back_populates='category', lazy='dynamic')

    def __init__(self, name, description=None):
        self.name = name
        self.description = description

    def __repr__(self):
        return f'<Category {self.name}>'


class Service(db.Model):
    __tablename__ = 'services'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False)  # Duration in minutes
    is_active = db.Column(db.Boolean, default=True)
    category_id = db.Column(db.String(36), db.ForeignKey('categories.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    category = db.relationship('Category', back_populates='services')

    def __init__(self, name, price, duration_minutes, description=None, is_active=True, category=None):
        self.name = name
        self.price = price
        self.duration_minutes = duration_minutes
        self.description = description
        self.is_active = is_active
        self.category = category

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': str(self.price),
            'duration': self.duration_minutes,
            'isActive': self.is_active,
            'categoryId': self.category_id,
        }

    def __repr__(self):
        return f'<Service {self.name}>'
