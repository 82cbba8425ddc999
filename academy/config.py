# academy.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale de l'académie.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe), sécurité cookies, CORS/hosts
- Expose les identifiants de prix Stripe du programme familial (abonnement + suppléments)
- Fournit l'URL publique utilisée pour les redirections de checkout
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

# Stripe: clés et secret webhook
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_API_VERSION = _clean_env(os.getenv("STRIPE_API_VERSION") or "2024-04-10")

# Programme familial: prix d'abonnement (mensuel/annuel) et suppléments récurrents
STRIPE_MONTHLY_PRICE_ID = _clean_env(os.getenv("STRIPE_MONTHLY_PRICE_ID") or "")
STRIPE_YEARLY_PRICE_ID = _clean_env(os.getenv("STRIPE_YEARLY_PRICE_ID") or "")
STRIPE_ADDITIONAL_CHILD_PRICE_ID = _clean_env(os.getenv("STRIPE_ADDITIONAL_CHILD_PRICE_ID") or "")
STRIPE_ADDITIONAL_CLASS_PRICE_ID = _clean_env(os.getenv("STRIPE_ADDITIONAL_CLASS_PRICE_ID") or "")

CHECKOUT_CURRENCY = _clean_env(os.getenv("CHECKOUT_CURRENCY") or "usd").lower()

# URL publique du site (success_url / cancel_url)
APP_URL = _clean_env(os.getenv("APP_URL") or os.getenv("NEXT_PUBLIC_APP_URL") or "http://localhost:8000").rstrip("/")

# Signal d'invalidation de cache côté présentation (optionnel)
REVALIDATE_URL = _clean_env(os.getenv("REVALIDATE_URL") or "")
REVALIDATE_SECRET = _clean_env(os.getenv("REVALIDATE_SECRET") or "")

# Fuseau des créneaux hebdomadaires du programme familial (heure murale)
SCHEDULE_TIMEZONE = _clean_env(os.getenv("SCHEDULE_TIMEZONE") or "UTC")
