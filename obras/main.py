# obras/main.py
import functools
import logging
from typing import Optional

from flask import Flask, jsonify, request, send_file, current_app
from werkzeug.utils import secure_filename

from obras.config import SIGN_UP_MESSAGE, ALL_CATEGORIES
from obras.core import aggregation, auth, charts, db
from obras.core.chat import ConversationReconciler, Analyzer
from obras.core.errors import AuthError, FetchError, PersistError, UploadError, ObrasError
from obras.core.models import Attachment
from obras.core.state import AppState

logger = logging.getLogger(__name__)


def get_state() -> AppState:
    return current_app.extensions["obras_state"]


def get_reconciler() -> ConversationReconciler:
    return current_app.extensions["obras_reconciler"]


def require_session(view):
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        if not get_state().session:
            return jsonify({"status": "error", "message": "Sessão inválida. Inicie sessão."}), 401
        return view(*args, **kwargs)
    return wrapper


def _selected(project_id: int):
    """Seleciona o projeto pedido (carregando a conversa se preciso) ou devolve None."""
    state = get_state()
    if state.selected_project_id == project_id:
        return state.get_project(project_id)
    return state.select_project(project_id)


def _not_found():
    return jsonify({"status": "error", "message": "Projeto não encontrado."}), 404


def create_app(supabase_client=None, analyze: Optional[Analyzer] = None, bind: bool = True) -> Flask:
    """Cria a aplicação Flask com o estado e o reconciliador de conversa."""
    if supabase_client is None:
        supabase_client = db.get_supabase_client()

    flask_app = Flask(__name__)
    state = AppState(supabase_client)
    flask_app.extensions["obras_state"] = state
    flask_app.extensions["obras_reconciler"] = ConversationReconciler(state, analyze=analyze)

    if bind:
        try:
            state.bind()
        except AuthError as e:
            logger.warning("Não foi possível ler a sessão inicial: %s", e)

    # --- Erros ---
    @flask_app.errorhandler(AuthError)
    def handle_auth_error(e):
        return jsonify({"status": "error", "message": str(e)}), 401

    @flask_app.errorhandler(FetchError)
    def handle_fetch_error(e):
        message = get_state().error or str(e)
        return jsonify({"status": "error", "message": message, "retry": True}), 503

    @flask_app.errorhandler(PersistError)
    @flask_app.errorhandler(UploadError)
    def handle_write_error(e):
        return jsonify({"status": "error", "message": str(e)}), 502

    @flask_app.errorhandler(ObrasError)
    def handle_generic_error(e):
        return jsonify({"status": "error", "message": str(e)}), 500

    # --- Autenticação ---
    @flask_app.route("/auth/sign-in", methods=["POST"])
    def sign_in():
        payload = request.get_json(silent=True) or {}
        session = auth.sign_in(supabase_client, payload.get("email", ""), payload.get("password", ""))
        if state.session is not session:
            state.handle_auth_change("SIGNED_IN", session)
        return jsonify({"status": "ok", "user_id": state.user_id, "error": state.error})

    @flask_app.route("/auth/sign-up", methods=["POST"])
    def sign_up():
        payload = request.get_json(silent=True) or {}
        auth.sign_up(supabase_client, payload.get("email", ""), payload.get("password", ""))
        return jsonify({"status": "ok", "message": SIGN_UP_MESSAGE})

    @flask_app.route("/auth/sign-out", methods=["POST"])
    def sign_out():
        state.sign_out()
        return jsonify({"status": "ok"})

    # --- Projetos ---
    @flask_app.route("/projects", methods=["GET"])
    @require_session
    def list_projects():
        projects = state.fetch_projects()
        return jsonify({"projects": [p.to_dict() for p in projects]})

    @flask_app.route("/projects", methods=["POST"])
    @require_session
    def create_project():
        payload = request.get_json(silent=True) or {}
        name = (payload.get("name") or "").strip()
        if not name:
            return jsonify({"status": "error", "message": "Indique o nome do projeto."}), 400
        project = state.create_project(name)
        return jsonify(project.to_dict(include_messages=True)), 201

    @flask_app.route("/projects/home", methods=["POST"])
    @require_session
    def go_to_project_list():
        projects = state.go_to_project_list()
        return jsonify({"projects": [p.to_dict() for p in projects]})

    @flask_app.route("/projects/<int:project_id>/select", methods=["POST"])
    @require_session
    def select_project(project_id):
        project = state.select_project(project_id)
        if project is None:
            return _not_found()
        return jsonify(project.to_dict(include_messages=True))

    # --- Conversa ---
    @flask_app.route("/projects/<int:project_id>/messages", methods=["POST"])
    async def send_message(project_id):
        if not state.session:
            return jsonify({"status": "error", "message": "Sessão inválida. Inicie sessão."}), 401
        project = _selected(project_id)
        if project is None:
            return _not_found()

        text = request.form.get("text", "")
        attachment = None
        image = request.files.get("image")
        if image and image.filename:
            attachment = Attachment(image.read(), image.mimetype, secure_filename(image.filename) or "anexo")

        accepted = await get_reconciler().send_message(project.id, text, attachment)
        if not accepted:
            return jsonify({"status": "ignored", "message": "Mensagem vazia ou já existe um pedido em curso."}), 409
        # Um refresh durante o turno pode ter trocado o objeto Project
        project = state.get_project(project_id) or project
        return jsonify(project.to_dict(include_messages=True))

    @flask_app.route("/projects/<int:project_id>/expenses/<int:expense_id>", methods=["DELETE"])
    @require_session
    def delete_expense(project_id, expense_id):
        if _selected(project_id) is None:
            return _not_found()
        state.delete_expense(expense_id)
        return jsonify({"status": "ok"})

    # --- Painel ---
    @flask_app.route("/projects/<int:project_id>/dashboard", methods=["GET"])
    @require_session
    def dashboard(project_id):
        project = _selected(project_id)
        if project is None:
            return _not_found()
        category = request.args.get("category", ALL_CATEGORIES)
        return jsonify(aggregation.dashboard_summary(project.expenses, category))

    @flask_app.route("/projects/<int:project_id>/charts/<kind>.png", methods=["GET"])
    @require_session
    def chart(project_id, kind):
        project = _selected(project_id)
        if project is None:
            return _not_found()
        if kind == "category":
            buf = charts.generate_category_chart(project.expenses)
        elif kind == "monthly":
            buf = charts.generate_monthly_trend_chart(project.expenses, request.args.get("category", ALL_CATEGORIES))
        else:
            return jsonify({"status": "error", "message": f"Gráfico desconhecido: {kind}"}), 404
        if buf is None:
            return jsonify({"status": "empty", "message": "Ainda não há despesas para este gráfico."}), 404
        return send_file(buf, mimetype="image/png")

    return flask_app
