from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

# key_func: clients are identified by IP address
# storage_uri: memory:// per process, or redis://... to share limits across replicas
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    default_limits=["100/minute"]
)
