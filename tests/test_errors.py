from sqlalchemy.exc import OperationalError

from errors import Conflict


def test_unknown_route(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json() == {"message": "Ресурс не найден"}


def test_wrong_method(client):
    resp = client.patch("/api/books")
    assert resp.status_code == 405
    assert "message" in resp.get_json()


def test_unexpected_error_does_not_leak_details(app, client):
    def boom():
        raise RuntimeError("password=hunter2")

    app.add_url_rule("/boom", "boom", boom)
    resp = client.get("/boom")

    assert resp.status_code == 500
    assert resp.get_json() == {"message": "Внутренняя ошибка сервера"}


def test_store_failure_is_transient(app, client):
    def locked():
        raise OperationalError("UPDATE books", {}, Exception("database is locked"))

    app.add_url_rule("/locked", "locked", locked)
    resp = client.get("/locked")

    assert resp.status_code == 503
    assert "повторите" in resp.get_json()["message"]


def test_api_error_envelope(app, client):
    def conflict():
        raise Conflict("Книга недоступна")

    app.add_url_rule("/conflict", "conflict", conflict)
    resp = client.get("/conflict")

    assert resp.status_code == 400
    assert resp.get_json() == {"message": "Книга недоступна"}


def test_cors_headers(client):
    resp = client.get("/api/books")
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert "Authorization" in resp.headers["Access-Control-Allow-Headers"]
