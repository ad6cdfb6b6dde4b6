from .cache import Cache, CacheLine, ConfigurationError
from .hierarchy import CacheSimulator
