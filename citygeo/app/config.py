# Upstream endpoints and HTTP settings: load from .env at project root when the app starts.
# Every value can be overridden through the environment.

import os
from pathlib import Path

_project_root = Path(__file__).resolve().parents[2]


def _load_dotenv() -> None:
    """Load .env from project root or cwd without overriding existing variables."""
    for path in (_project_root / ".env", Path.cwd() / ".env"):
        if path.is_file():
            with open(path, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        k, _, v = line.partition("=")
                        v = v.strip().strip('"').strip("'")
                        os.environ.setdefault(k.strip(), v)
            break


def _env(name: str, default: str) -> str:
    return (os.getenv(name, default) or default).strip()


_load_dotenv()

CENSUS_URL = _env("CITYGEO_CENSUS_URL", "https://api.census.gov/data/")
GEOCODER_URL = _env("CITYGEO_GEOCODER_URL", "https://geocoding.geo.census.gov/geocoder/")
ZCTA_JSON_URL = _env(
    "CITYGEO_ZCTA_URL",
    "https://s3.amazonaws.com/citysdk/zipcode-to-coordinates.json",
)
FCC_BLOCK_URL = _env("CITYGEO_FCC_URL", "http://data.fcc.gov/api/block/find")
NOMINATIM_URL = _env("CITYGEO_NOMINATIM_URL", "http://nominatim.openstreetmap.org/search")
MAPZEN_URL = _env("CITYGEO_MAPZEN_URL", "https://search.mapzen.com/v1/search")

HTTP_TIMEOUT = float(_env("CITYGEO_HTTP_TIMEOUT", "20"))
USER_AGENT = "citygeo/0.1"

# Default key for the HTTP surface; library callers pass their own.
MAPZEN_API_KEY = (os.getenv("MAPZEN_API_KEY", "") or "").strip()

CORS_ORIGINS = _env("CORS_ORIGINS", "*")
