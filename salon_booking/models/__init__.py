# Import all models here for easier imports elsewhere
from .user import User
from .service import Category, Service
from .appointment import Appointment, AppointmentServiceLine
from .tokens import RefreshToken, PasswordResetToken
from .audit import AuditLog
