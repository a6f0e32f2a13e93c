from flashhold.core.config import settings
from flashhold.core.database import get_db, Base, get_db_session
