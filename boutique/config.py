# boutique.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (JWT, Redis, Supabase, Stripe)
- Expose les paramètres métier du checkout (devise, seuil du coupon cadeau)
- Fournit les URLs de redirection du checkout et les réglages cookies/CORS
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default

def _float_env(name: str, default: float) -> float:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default

# JWT: deux secrets distincts (access court, refresh long)
ACCESS_TOKEN_SECRET = _clean_env(os.getenv("ACCESS_TOKEN_SECRET") or "")
REFRESH_TOKEN_SECRET = _clean_env(os.getenv("REFRESH_TOKEN_SECRET") or "")
ACCESS_TOKEN_TTL_SECONDS = _int_env("ACCESS_TOKEN_TTL_SECONDS", 15 * 60)
REFRESH_TOKEN_TTL_SECONDS = _int_env("REFRESH_TOKEN_TTL_SECONDS", 7 * 24 * 60 * 60)

# Redis: store de révocation des refresh tokens (+ rate limiting)
REDIS_URL = _clean_env(os.getenv("REDIS_URL") or "redis://127.0.0.1:6379/0")
RATE_LIMIT_REDIS_URL = _clean_env(os.getenv("RATE_LIMIT_REDIS_URL") or REDIS_URL)

# Timeouts des dépendances externes (secondes)
STORE_TIMEOUT_SECONDS = _float_env("STORE_TIMEOUT_SECONDS", 5.0)
GATEWAY_TIMEOUT_SECONDS = _float_env("GATEWAY_TIMEOUT_SECONDS", 10.0)

# Supabase: URL et clé service
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé privée et secret webhook
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# Checkout: front client et pages de succès/annulation
CLIENT_URL = _clean_env(os.getenv("CLIENT_URL") or "http://localhost:5173").rstrip("/")
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/purchase-success")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/purchase-cancel")
CURRENCY = _clean_env(os.getenv("CURRENCY") or "usd").lower()

# Coupon cadeau: seuil en centimes (20000 = 200.00), remise et validité
COUPON_THRESHOLD_MINOR_UNITS = _int_env("COUPON_THRESHOLD_MINOR_UNITS", 20000)
COUPON_DISCOUNT_PERCENTAGE = _int_env("COUPON_DISCOUNT_PERCENTAGE", 10)
COUPON_VALIDITY_DAYS = _int_env("COUPON_VALIDITY_DAYS", 30)

# Cookies / CORS
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]
