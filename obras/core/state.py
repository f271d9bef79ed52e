# obras/core/state.py
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from supabase import Client

from obras.config import FETCH_ERROR_MESSAGE
from obras.core import auth, db
from obras.core.errors import FetchError
from obras.core.models import Project

logger = logging.getLogger(__name__)


class SingleFlight:
    """Marca chaves com trabalho em curso; um segundo pedido para a mesma chave é recusado."""

    def __init__(self):
        self._lock = threading.Lock()
        self._active = set()

    @contextmanager
    def claim(self, key: Any) -> Iterator[bool]:
        with self._lock:
            acquired = key not in self._active
            if acquired:
                self._active.add(key)
        try:
            yield acquired
        finally:
            if acquired:
                with self._lock:
                    self._active.discard(key)

    def is_active(self, key: Any) -> bool:
        with self._lock:
            return key in self._active


class AppState:
    """Estado da aplicação: sessão, lista de projetos e projeto selecionado."""

    def __init__(self, supabase_client: Client):
        self.supabase_client = supabase_client
        self.session = None
        self.projects: List[Project] = []
        self.selected_project_id: Optional[Any] = None
        self.error: Optional[str] = None
        self.turns = SingleFlight()
        self._subscription = None

    # --- Sessão ---
    def bind(self) -> None:
        """Lê a sessão atual e passa a seguir as mudanças de autenticação."""
        self.handle_auth_change("INITIAL_SESSION", auth.get_session(self.supabase_client))
        self._subscription = auth.subscribe_auth_changes(self.supabase_client, self.handle_auth_change)

    def handle_auth_change(self, event: str, session) -> None:
        logger.info("Mudança de sessão: %s", event)
        self.session = session
        if session:
            try:
                self.fetch_projects()
            except FetchError:
                # O erro fica em self.error para o ecrã de nova tentativa
                pass
        else:
            self.teardown()

    def teardown(self) -> None:
        self.projects = []
        self.selected_project_id = None
        self.error = None

    def sign_out(self) -> None:
        auth.sign_out(self.supabase_client)
        self.session = None
        self.teardown()

    @property
    def user_id(self) -> Optional[str]:
        if not self.session:
            return None
        return self.session.user.id

    # --- Projetos ---
    @property
    def selected_project(self) -> Optional[Project]:
        return self.get_project(self.selected_project_id)

    def get_project(self, project_id: Any) -> Optional[Project]:
        if project_id is None:
            return None
        return next((p for p in self.projects if p.id == project_id), None)

    def fetch_projects(self) -> List[Project]:
        if not self.session:
            return self.projects
        self.error = None
        try:
            fresh = db.get_projects(self.supabase_client)
        except FetchError:
            self.error = FETCH_ERROR_MESSAGE
            raise

        current: Dict[Any, Project] = {p.id: p for p in self.projects}
        merged = []
        for project in fresh:
            previous = current.get(project.id)
            if previous is not None and self.turns.is_active(project.id):
                # Turno em curso: o turno é dono das despesas e mensagens em memória
                project.expenses = previous.expenses
                project.messages = previous.messages
            elif previous is not None:
                project.messages = previous.messages
            merged.append(project)
        self.projects = merged
        return self.projects

    def select_project(self, project_id: Any) -> Optional[Project]:
        project = self.get_project(project_id)
        if project is None:
            return None
        self.selected_project_id = project_id
        if project.messages:
            return project
        try:
            project.messages = db.get_messages(self.supabase_client, project_id)
        except FetchError as e:
            logger.error("Erro ao carregar mensagens do projeto %s: %s", project_id, e)
        return project

    def go_to_project_list(self) -> List[Project]:
        self.selected_project_id = None
        return self.fetch_projects()

    def create_project(self, name: str) -> Optional[Project]:
        if not self.session:
            return None
        project = db.create_project(self.supabase_client, name, self.user_id)
        self.projects.append(project)
        self.selected_project_id = project.id
        return project

    def delete_expense(self, expense_id: Any) -> bool:
        project = self.selected_project
        if project is None:
            return False
        db.delete_expense(self.supabase_client, expense_id)
        project.remove_expense(expense_id)
        return True
