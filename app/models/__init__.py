from app.models.tenant import Tenant, Theme
from app.models.user import Role, User
