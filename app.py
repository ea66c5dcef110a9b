"""Flask web application entry point for the FAIS content pipeline."""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, MutableMapping, Optional

from flask import Flask, g, jsonify, redirect, request
from openai import OpenAI
from sqlalchemy.exc import SQLAlchemyError

from core.article_writer import ArticleWriter
from core.auth_manager import AuthManager
from core.automated_run import AutomatedRunDriver
from core.blob_storage import BlobStorageClient, MediaLibrary
from core.database import init_db, session_scope
from core.media_generation import MediaGenerationError, MediaGenerationService, describe_endpoint
from core.prediction_client import PredictionClient
from core.scheduler import RunScheduler, SchedulerConfig
from models.user import User
from utils.config_loader import load_config
from utils.logger import setup_logger

StatusDict = MutableMapping[str, Any]
StatusUpdater = Callable[..., None]
Executor = Callable[[Callable[[], None]], Any]

MEDIA_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class RunController:
    """Manage automated run execution and expose status helpers."""

    def __init__(
        self,
        driver: AutomatedRunDriver,
        *,
        status: Optional[StatusDict] = None,
        logger=None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.driver = driver
        self.logger = logger
        self.status: StatusDict = status or {
            "is_running": False,
            "progress": 0,
            "total": 0,
            "message": "Idle",
            "trigger": None,
            "last_error": None,
            "last_summary": None,
        }
        self.lock = threading.Lock()
        self.executor = executor or self._default_executor

    def start(self, trigger: str = "manual") -> bool:
        """Attempt to start a run in the background; False while one is in progress."""
        with self.lock:
            if self.status.get("is_running"):
                return False
            self.status.update(
                {
                    "is_running": True,
                    "progress": 0,
                    "total": 0,
                    "message": "Starting article generation run...",
                    "trigger": trigger,
                    "last_error": None,
                }
            )

        def task():
            try:
                summary = self.driver.run(self.status, self._update_status)
                self._update_status(last_summary=summary.to_dict())
            except Exception as exc:
                if self.logger:
                    self.logger.error("Article generation run crashed: %s", exc, exc_info=True)
                self._update_status(message=f"Run failed: {exc}", last_error=str(exc))
            finally:
                self._update_status(is_running=False)

        self.executor(task)
        return True

    def get_status(self) -> Dict[str, Any]:
        with self.lock:
            return dict(self.status)

    def _update_status(self, **kwargs):
        with self.lock:
            self.status.update(kwargs)

    @staticmethod
    def _default_executor(func: Callable[[], None]):
        thread = threading.Thread(target=func, daemon=True)
        thread.start()
        return thread


def create_app(
    *,
    config_path: str | Path = "config.yml",
    config: Optional[Mapping[str, Any]] = None,
    media_service: Optional[MediaGenerationService] = None,
    article_writer: Optional[ArticleWriter] = None,
    run_driver: Optional[AutomatedRunDriver] = None,
    run_controller: Optional[RunController] = None,
    controller_executor: Optional[Executor] = None,
    # Dependency Injection for testing
    db_session_factory: Optional[Callable[[], Any]] = None,
    auth_manager: Optional[AuthManager] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Flask:
    """Application factory so tests can inject mocked dependencies."""
    config_data = dict(config) if config else load_config(config_path)
    env = os.environ if environ is None else environ
    paths_cfg = config_data.get("paths", {})
    log_dir = Path(paths_cfg.get("log_dir", "data/logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = setup_logger("WebApp", log_dir=log_dir)

    if db_session_factory is None:
        db = init_db(config_data, env)
        if db.test_connection():
            db.create_tables()
            logger.info("Database connection verified.")
        else:
            logger.warning("Database connection failed; admin login and gallery records are unavailable.")
        db_session_factory = db.get_session_factory()
        _ensure_admin_user(db_session_factory, env, logger)

    app = Flask(__name__)
    app.secret_key = env.get("FLASK_SECRET_KEY") or config_data.get("secret_key", "dev-secret-key-change-in-prod")

    auth_manager = auth_manager or AuthManager(db_session_factory, environ=env)

    if run_controller is None:
        run_driver = run_driver or AutomatedRunDriver.from_config(config_data, logger=logger)
        run_controller = RunController(run_driver, logger=logger, executor=controller_executor)

    scheduler = RunScheduler(
        run_controller,
        SchedulerConfig.from_mapping(config_data.get("scheduler")),
        logger=logger,
    )
    scheduler.start()

    app.config.update(
        {
            "RUN_CONTROLLER": run_controller,
            "RUN_SCHEDULER": scheduler,
            "LOGGER": logger,
            "DB_SESSION_FACTORY": db_session_factory,
            "MEDIA_SERVICE": media_service,
            "ARTICLE_WRITER": article_writer,
        }
    )

    def _media_service() -> MediaGenerationService:
        service = app.config.get("MEDIA_SERVICE")
        if service is None:
            service = _build_media_service(config_data, env, db_session_factory, logger)
            app.config["MEDIA_SERVICE"] = service
        return service

    def _article_writer() -> ArticleWriter:
        writer = app.config.get("ARTICLE_WRITER")
        if writer is None:
            writer_cfg = config_data.get("writer", {})
            writer = ArticleWriter(
                OpenAI(api_key=env.get("OPENAI_API_KEY")),
                model=writer_cfg.get("model", "gpt-4o"),
                media_service=_media_service() if _media_configured(env) else None,
                image_model=writer_cfg.get("image_model", "google/imagen-4"),
                logger=logger,
            )
            app.config["ARTICLE_WRITER"] = writer
        return writer

    @app.before_request
    def load_logged_in_user():
        auth_manager.load_logged_in_user()

    @app.errorhandler(MediaGenerationError)
    def media_error(exc: MediaGenerationError):
        return jsonify(exc.to_dict()), exc.status

    @app.post("/api/login")
    def api_login():
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"success": False, "message": "No data"}), 400
        if auth_manager.login(data.get("username"), data.get("password")):
            return jsonify({"success": True})
        return jsonify({"success": False, "message": "Invalid username or password"}), 401

    @app.route("/logout")
    def logout():
        auth_manager.logout()
        return redirect("/")

    @app.route("/")
    def index():
        return jsonify({"success": True, "user": g.user, "status": run_controller.get_status()})

    @app.route("/api/admin/ai-tools/generate-media", methods=["GET", "POST", "HEAD", "OPTIONS"])
    def generate_media():
        if request.method == "OPTIONS":
            return "", 204, MEDIA_CORS_HEADERS
        if request.method == "HEAD":
            return "", 200
        if request.method == "GET":
            return jsonify(describe_endpoint())

        if not auth_manager.is_admin_request():
            return jsonify({"error": "Forbidden: Admin access required"}), 403
        if not _media_configured(env):
            logger.error("Media generation requested without REPLICATE_API_TOKEN/BLOB_READ_WRITE_TOKEN.")
            return jsonify({"error": "Server misconfigured", "message": "Media generation credentials are not set"}), 500

        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return jsonify({"error": "Invalid JSON body"}), 400
        try:
            result = _media_service().generate(payload)
        except MediaGenerationError:
            raise
        except Exception as exc:
            logger.error("Media generation failed: %s", exc, exc_info=True)
            return jsonify({"error": "Internal Server Error", "message": str(exc)}), 500
        return jsonify(result)

    @app.post("/api/change-password")
    @auth_manager.login_required
    def change_password():
        data = request.get_json(silent=True) or {}
        old_password = data.get("old_password") or ""
        new_password = data.get("new_password") or ""
        if len(new_password) < 8:
            return jsonify({"success": False, "message": "New password must be at least 8 characters"}), 400
        if not auth_manager.change_password(g.user["id"], old_password, new_password):
            return jsonify({"success": False, "message": "Current password is incorrect"}), 400
        return jsonify({"success": True})

    @app.post("/api/admin/ai-tools/generate-article")
    @auth_manager.admin_required
    def generate_article():
        if app.config.get("ARTICLE_WRITER") is None and not env.get("OPENAI_API_KEY"):
            return jsonify({"error": "Server misconfigured", "message": "OPENAI_API_KEY is not set"}), 500

        data = request.get_json(silent=True) or {}
        topic = str(data.get("topic") or "").strip()
        if not topic:
            return jsonify({"error": "Topic is required"}), 400
        try:
            article = _article_writer().write(
                topic,
                keywords=data.get("keywords") or [],
                tone=data.get("tone") or "informative",
                word_count=int(data.get("wordCount") or 800),
                include_image=bool(data.get("includeImage", True)),
            )
        except Exception as exc:
            logger.error("Article generation failed for '%s': %s", topic, exc, exc_info=True)
            return jsonify({"error": "Internal Server Error", "message": str(exc)}), 500
        if data.get("id"):
            article["id"] = data["id"]
        return jsonify(article)

    @app.post("/api/cron/automated-article-generation")
    def start_automated_run():
        if not auth_manager.is_cron_request():
            return jsonify({"success": False, "message": "Unauthorized"}), 401
        if not run_controller.start(trigger="cron"):
            return jsonify({"success": False, "message": "A run is already in progress"}), 409
        return jsonify({"success": True, "message": "Article generation run started"}), 202

    @app.get("/api/cron/status")
    def run_status():
        if not (auth_manager.is_cron_request() or auth_manager.is_admin_request()):
            return jsonify({"success": False, "message": "Unauthorized"}), 401
        data = run_controller.get_status()
        data["next_run_at"] = scheduler.next_run_at.isoformat() if scheduler.next_run_at else None
        return jsonify({"success": True, "data": data})

    return app


def _media_configured(env: Mapping[str, str]) -> bool:
    return bool(env.get("REPLICATE_API_TOKEN")) and bool(env.get("BLOB_READ_WRITE_TOKEN"))


def _build_media_service(
    config: Mapping[str, Any],
    env: Mapping[str, str],
    session_factory: Optional[Callable[[], Any]],
    logger,
) -> MediaGenerationService:
    replicate_cfg = config.get("replicate", {})
    blob_cfg = config.get("blob", {})
    prediction_client = PredictionClient(
        env.get("REPLICATE_API_TOKEN", ""),
        api_base=replicate_cfg.get("api_base", "https://api.replicate.com/v1"),
        timeout=float(replicate_cfg.get("request_timeout", 30)),
        logger=logger,
    )
    blob_client = BlobStorageClient(
        env.get("BLOB_READ_WRITE_TOKEN", ""),
        api_base=blob_cfg.get("api_base", "https://blob.vercel-storage.com"),
        timeout=float(blob_cfg.get("request_timeout", 60)),
    )
    return MediaGenerationService(
        prediction_client,
        MediaLibrary(blob_client, session_factory, folder=blob_cfg.get("folder", "ai-generated"), logger=logger),
        poll_interval=float(replicate_cfg.get("poll_interval", 5)),
        max_attempts=int(replicate_cfg.get("max_attempts", 60)),
        download_timeout=float(blob_cfg.get("request_timeout", 60)),
        logger=logger,
    )


def _ensure_admin_user(session_factory, env: Mapping[str, str], logger) -> None:
    """Create or update the admin account from ADMIN_USERNAME/ADMIN_PASSWORD when both are set."""
    username = (env.get("ADMIN_USERNAME") or "").strip()
    password = env.get("ADMIN_PASSWORD") or ""
    if not session_factory or not username or not password:
        return
    try:
        with session_scope(session_factory) as session:
            User.upsert_admin(session, username, password)
    except SQLAlchemyError as exc:
        logger.error("Failed to create admin user: %s", exc)
        return
    logger.info("Admin user '%s' is ready.", username)


if __name__ == "__main__":  # pragma: no cover
    application = create_app()
    application.run(host="0.0.0.0", port=5000, debug=False, use_reloader=False)
