import pytest
from flask import Flask

from stockly import factory
from stockly.config import settings
from stockly.domain.users import authenticate


def test_create_app_runs_migrations(app, tmp_path, monkeypatch):
    upgrades = []
    monkeypatch.setattr(factory, "upgrade_database", lambda app_obj: upgrades.append(app_obj))

    new_app = factory.create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})

    assert upgrades == [new_app]
    assert "order_book.upsert_order" in new_app.view_functions
    assert "diagnostics.healthz" in new_app.view_functions


def test_directory_db_path_refuses_to_start(app, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DB_PATH", str(tmp_path))
    with pytest.raises(SystemExit):
        factory.ensure_db_path(Flask(__name__))


def test_missing_db_directory_is_created(app, tmp_path, monkeypatch):
    target = tmp_path / "nested" / "data" / "stock.db"
    monkeypatch.setattr(settings, "DB_PATH", str(target))
    factory.ensure_db_path(Flask(__name__))
    assert target.parent.is_dir()


def test_set_password_command(app, company):
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=["set-password", "manager@harbour.example", "--password", "fresh"]
    )
    assert result.exit_code == 0, result.output

    assert authenticate("manager@harbour.example", "fresh")["id"] == company["user_id"]


def test_set_password_unknown_user(app):
    result = app.test_cli_runner().invoke(
        args=["set-password", "ghost@example.com", "--password", "x"]
    )
    assert result.exit_code != 0
    assert "No user with email" in result.output
