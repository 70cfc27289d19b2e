import os
from dotenv import load_dotenv

load_dotenv()

REDIS_URL = os.getenv("REDIS_URL")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY")

CAMPAIGN_STORE_BACKEND = (os.getenv("CAMPAIGN_STORE_BACKEND") or "memory").lower()
CAMPAIGN_GUARD_BACKEND = (os.getenv("CAMPAIGN_GUARD_BACKEND") or "memory").lower()
CAMPAIGN_TRANSPORT = (os.getenv("CAMPAIGN_TRANSPORT") or "feed").lower()

_REQUIRED = {
	"redis": ["REDIS_URL"],
	"supabase": ["SUPABASE_URL", "SUPABASE_KEY"],
}


def validate_keys(raise_on_missing: bool = False):
	"""Return env vars the configured store/guard backends need but are missing."""
	current = {"REDIS_URL": REDIS_URL, "SUPABASE_URL": SUPABASE_URL, "SUPABASE_KEY": SUPABASE_KEY}
	missing = []
	for backend in (CAMPAIGN_STORE_BACKEND, CAMPAIGN_GUARD_BACKEND):
		for var in _REQUIRED.get(backend, []):
			if not current.get(var) and var not in missing:
				missing.append(var)
	if missing and raise_on_missing:
		raise EnvironmentError(f"Missing required env vars: {', '.join(missing)}")
	return missing
