from .health import health_bp
from .auth import auth_bp
from .masters import masters_bp
from .leaves import leaves_bp
from .booking import booking_bp
from .chalans import chalan_bp
from .reports import reports_bp
from .audit_logs import audit_bp
