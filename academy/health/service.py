from urllib.parse import urlparse
import socket
from typing import Any, Dict

from academy.config import SUPABASE_URL, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from academy.infra import supabase_client

CHECKED_TABLES = ("courses", "user_course_enrollments", "program_enrollments", "cart_items", "children", "class_enrollments")

def _check_table(client, name: str) -> Dict[str, Any]:
    try:
        res = client.table(name).select("id").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}

# module academy.health.service
def health_supabase_info() -> Dict[str, Any]:
    """Diagnostic de connexion: DNS, client service-role, accès aux tables."""
    parsed = urlparse(SUPABASE_URL) if SUPABASE_URL else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info: Dict[str, Any] = {
        "supabase_url": SUPABASE_URL,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = supabase_client.get_service_supabase()
        for t in CHECKED_TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info

def stripe_config_info() -> Dict[str, Any]:
    return {"secret_key": bool(STRIPE_SECRET_KEY), "webhook_secret": bool(STRIPE_WEBHOOK_SECRET)}
