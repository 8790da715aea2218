# Import section
import pytest
from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient

import helldivers_backend.config as config
from helldivers_backend.utils.rate_limit import (
    SlidingWindowLimiter,
    client_ip,
    optional_rate_limit,
    peer_ip,
    rate_limit_health_info,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.get("/limitedA", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_a():
        return {"ok": True}

    @app.get("/limitedB", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_b():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_sliding_window_blocks_then_recovers():
    clock = FakeClock()
    limiter = SlidingWindowLimiter(times=2, seconds=60, clock=clock)
    assert limiter.hit("k") is True
    clock.now += 10
    assert limiter.hit("k") is True
    assert limiter.hit("k") is False
    assert limiter.retry_after("k") == pytest.approx(50.0)

    # Le premier appel sort de la fenêtre
    clock.now += 50
    assert limiter.hit("k") is True
    assert limiter.hit("k") is False


def test_sliding_window_keys_are_independent_and_store_injectable():
    store = {}
    limiter = SlidingWindowLimiter(times=1, seconds=5, clock=FakeClock(), store=store)
    assert limiter.hit("a") is True
    assert limiter.hit("b") is True
    assert limiter.hit("a") is False
    assert set(store) == {"a", "b"}
    limiter.reset()
    assert store == {}


def test_sliding_window_prunes_expired_keys():
    clock = FakeClock()
    store = {}
    limiter = SlidingWindowLimiter(times=1, seconds=60, clock=clock, store=store)
    for i in range(1000):
        assert limiter.hit(f"ip:10.0.{i // 256}.{i % 256}") is True
    assert len(store) == 1000

    clock.now += 61
    assert limiter.hit("ip:fresh") is True
    assert list(store) == ["ip:fresh"]


def test_sliding_window_sweep_keeps_keys_still_in_window():
    clock = FakeClock()
    store = {}
    limiter = SlidingWindowLimiter(times=1, seconds=60, clock=clock, store=store)
    assert limiter.hit("k") is True
    clock.now += 30
    assert limiter.hit("other") is True
    clock.now += 31
    # "k" a expiré mais "other" est encore dans sa fenêtre
    assert limiter.hit("other") is False
    assert set(store) == {"other"}


def test_sliding_window_rejects_bad_parameters():
    with pytest.raises(ValueError):
        SlidingWindowLimiter(times=0, seconds=60)


def test_local_fallback_blocks_after_limit_per_path(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=2, seconds=60))

    assert client.get("/limitedA").status_code == 200
    assert client.get("/limitedA").status_code == 200
    blocked = client.get("/limitedA")
    assert blocked.status_code == 429
    assert "retry-after" in blocked.headers

    # path B: indépendant de A
    assert client.get("/limitedB").status_code == 200


def test_local_fallback_ignores_spoofed_forwarded_for(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=1, seconds=60))
    assert client.get("/limitedA", headers={"X-Forwarded-For": "1.1.1.1"}).status_code == 200
    # Changer d'en-tête ne donne pas un nouveau quota: la clé est l'adresse socket
    assert client.get("/limitedA", headers={"X-Forwarded-For": "2.2.2.2"}).status_code == 429
    assert client.get("/limitedA").status_code == 429


def test_local_fallback_trusts_forwarded_for_from_known_proxy(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    monkeypatch.setattr(config, "TRUSTED_PROXIES", ["testclient"])
    client = TestClient(_make_app(times=1, seconds=60))
    # Le dernier saut (ajouté par le proxy) identifie le client; les sauts fournis par le client sont ignorés
    assert client.get("/limitedA", headers={"X-Forwarded-For": "9.9.9.9, 1.1.1.1"}).status_code == 200
    assert client.get("/limitedA", headers={"X-Forwarded-For": "8.8.8.8, 1.1.1.1"}).status_code == 429
    assert client.get("/limitedA", headers={"X-Forwarded-For": "2.2.2.2"}).status_code == 200


def test_peer_ip_and_audit_ip_differ_for_forwarded_requests():
    app = FastAPI()

    @app.get("/who")
    def who(request: Request):
        return {"peer": peer_ip(request), "audit": client_ip(request)}

    data = TestClient(app).get("/who", headers={"X-Forwarded-For": "1.1.1.1, 10.0.0.1"}).json()
    assert data == {"peer": "testclient", "audit": "1.1.1.1"}


def test_disabled_flag_bypasses_limit():
    app = _make_app(times=1, seconds=60)
    app.state.rate_limit_enabled = False
    client = TestClient(app)
    assert client.get("/limitedA").status_code == 200
    assert client.get("/limitedA").status_code == 200


def test_rate_limit_health_info(monkeypatch):
    app = _make_app()
    client = TestClient(app)
    app.state.rate_limit_enabled = True

    info = client.get("/rl_info").json()
    assert info["enabled"] is True
    assert info["ready"] is False
    assert info["backend"] is None

    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    info2 = client.get("/rl_info").json()
    assert info2["backend"] == "memory"
    assert info2["ready"] is True
