from typing import Callable, Dict, Any, List, MutableMapping, Optional
from fastapi import Request, Response, HTTPException
import logging
import os
import threading
import time

import helldivers_backend.config as config

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """
    Limiteur à fenêtre glissante en mémoire.
    - clock: horloge injectable (secondes, float); time.monotonic par défaut
    - store: dict {clé: [horodatages]}; un dict neuf par défaut
    Les clés dont la fenêtre est vide sont supprimées: à chaque appel pour la clé concernée,
    et pour toutes les clés lors d'un balayage au plus une fois par fenêtre.
    """

    def __init__(
        self,
        times: int,
        seconds: float,
        clock: Optional[Callable[[], float]] = None,
        store: Optional[MutableMapping[str, List[float]]] = None,
    ):
        if times <= 0 or seconds <= 0:
            raise ValueError("times and seconds must be positive")
        self.times = times
        self.seconds = seconds
        self.clock = clock or time.monotonic
        self.store: MutableMapping[str, List[float]] = store if store is not None else {}
        self._lock = threading.Lock()
        self._last_sweep = self.clock()

    def _live(self, key: str, now: float) -> List[float]:
        hits = [t for t in self.store.get(key, []) if now - t < self.seconds]
        if not hits:
            self.store.pop(key, None)
        return hits

    def _sweep(self, now: float) -> None:
        for key in list(self.store):
            self._live(key, now)
        self._last_sweep = now

    def hit(self, key: str) -> bool:
        """Enregistre un appel; False si la limite est atteinte (l'appel refusé n'est pas compté)."""
        now = self.clock()
        with self._lock:
            if now - self._last_sweep >= self.seconds:
                self._sweep(now)
            hits = self._live(key, now)
            if len(hits) >= self.times:
                self.store[key] = hits
                return False
            hits.append(now)
            self.store[key] = hits
            return True

    def retry_after(self, key: str) -> float:
        hits = self.store.get(key) or []
        if len(hits) < self.times:
            return 0.0
        return max(0.0, self.seconds - (self.clock() - hits[0]))

    def reset(self) -> None:
        with self._lock:
            self.store.clear()
            self._last_sweep = self.clock()


def client_ip(request: Request) -> str:
    # Audit uniquement (colonne ip_address): premier saut X-Forwarded-For, sinon l'adresse socket
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip() if forwarded else ""
    if first:
        return first
    return request.client.host if request.client else "local"


def peer_ip(request: Request) -> str:
    """
    Identité utilisée par le limiteur: l'adresse socket du pair.
    Derrière un proxy de confiance (TRUSTED_PROXIES), le dernier saut X-Forwarded-For
    qui n'est pas lui-même un proxy de confiance (celui ajouté par notre proxy).
    """
    peer = request.client.host if request.client else "local"
    if peer not in config.TRUSTED_PROXIES:
        return peer
    hops = [h.strip() for h in request.headers.get("x-forwarded-for", "").split(",") if h.strip()]
    for hop in reversed(hops):
        if hop not in config.TRUSTED_PROXIES:
            return hop
    return peer


def _limiter_for(request: Request, times: int, seconds: int) -> SlidingWindowLimiter:
    # Un limiteur par (times, seconds), stocké sur app.state
    limiters: Dict[str, SlidingWindowLimiter] = getattr(request.app.state, "local_rate_limiters", None) or {}
    name = f"{times}/{seconds}"
    limiter = limiters.get(name)
    if limiter is None:
        limiter = SlidingWindowLimiter(times, seconds)
        limiters[name] = limiter
        request.app.state.local_rate_limiters = limiters
    return limiter


def optional_rate_limit(times: int, seconds: int):
    async def _dep(request: Request, response: Response):
        key = f"ip:{peer_ip(request)}:{request.url.path}"

        # Fallback mémoire (DEV / tests) si demandé
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            limiter = _limiter_for(request, times, seconds)
            if not limiter.hit(key):
                logger.warning("rate_limit.local exceeded key=%s", key)
                raise HTTPException(
                    status_code=429,
                    detail="Too Many Requests",
                    headers={"Retry-After": str(int(limiter.retry_after(key)) + 1)},
                )
            return

        # Respecter le flag global
        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return

        from fastapi_limiter import FastAPILimiter
        from fastapi_limiter.depends import RateLimiter
        if getattr(FastAPILimiter, "redis", None) is None:
            return

        async def _identifier(req: Request) -> str:
            return key

        try:
            return await RateLimiter(times=times, seconds=seconds, identifier=_identifier)(request, response)
        except HTTPException:
            raise
        except Exception:
            # Redis indisponible: pas de 429 en prod; en dev, activer LOCAL_RATE_LIMIT_FALLBACK=1
            logger.exception("rate_limit.redis failed key=%s", key)
            return
    return _dep


def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)

    limiter_ready = False
    backend = None
    try:
        from fastapi_limiter import FastAPILimiter
        limiter_ready = getattr(FastAPILimiter, "redis", None) is not None
        backend = "redis" if limiter_ready else None
    except Exception:
        limiter_ready = False
        backend = None

    if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
        backend = "memory"
        limiter_ready = True

    info: Dict[str, Any] = {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": backend,
    }

    if backend == "redis":
        from urllib.parse import urlparse
        redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
        if redis_url:
            p = urlparse(redis_url)
            info["redis"] = {
                "scheme": p.scheme,
                "host": p.hostname,
                "port": p.port,
            }

    return info
