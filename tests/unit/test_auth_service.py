from types import SimpleNamespace

from academy.auth import repository as auth_repository
from academy.auth import service as auth_service


def _fake_supabase(user):
    auth = SimpleNamespace(get_user=lambda token: SimpleNamespace(user=user))
    return SimpleNamespace(auth=auth)

def test_get_user_from_token_normalizes_object(monkeypatch):
    user = SimpleNamespace(id="u1", email="a@b.c", user_metadata={"full_name": "A"})
    monkeypatch.setattr(auth_repository, "get_supabase", lambda: _fake_supabase(user))

    out = auth_service.get_user_from_token("tok")
    assert out == {"id": "u1", "email": "a@b.c", "metadata": {"full_name": "A"}, "token": "tok"}

def test_get_user_from_token_without_user(monkeypatch):
    monkeypatch.setattr(auth_repository, "get_supabase", lambda: _fake_supabase(None))

    out = auth_service.get_user_from_token("tok")
    assert out["id"] is None
    assert out["metadata"] == {}
