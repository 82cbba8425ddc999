"""
Signal d'invalidation de cache vers la couche présentation.

Après chaque écriture de droits (inscription cours, activation programme), le service
signale les chemins dont le rendu est devenu obsolète (/dashboard, /courses/<slug>...).
Le signal est "fire-and-forget":
- notifie les listeners enregistrés en process (ex: tests)
- si REVALIDATE_URL est configuré, POST {"path": ...} vers le front (httpx, timeout court)
Aucune erreur n'est remontée à l'appelant: un échec est journalisé en warning.
"""
import logging
from typing import Callable, List

import httpx

from academy.config import REVALIDATE_URL, REVALIDATE_SECRET

logger = logging.getLogger(__name__)

_listeners: List[Callable[[str], None]] = []

def add_listener(listener: Callable[[str], None]) -> None:
    _listeners.append(listener)

def remove_listener(listener: Callable[[str], None]) -> None:
    if listener in _listeners:
        _listeners.remove(listener)

def revalidate_path(path: str) -> None:
    for listener in list(_listeners):
        try:
            listener(path)
        except Exception:
            logger.warning("revalidate.listener failed path=%s", path, exc_info=True)

    if not REVALIDATE_URL:
        return
    headers = {"Content-Type": "application/json"}
    if REVALIDATE_SECRET:
        headers["Authorization"] = f"Bearer {REVALIDATE_SECRET}"
    try:
        httpx.post(REVALIDATE_URL, json={"path": path}, headers=headers, timeout=5)
    except httpx.HTTPError as e:
        logger.warning("revalidate.post failed path=%s error=%s", path, e)
