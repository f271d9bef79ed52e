# obras/core/chat.py
import datetime
import logging
from typing import Awaitable, Callable, List, Optional

from obras.config import ERROR_MESSAGE, NOT_UNDERSTOOD_MESSAGE
from obras.core import ai, db
from obras.core.models import Attachment, Expense, ExtractionResult, Message, Project
from obras.core.state import AppState

logger = logging.getLogger(__name__)

Analyzer = Callable[[str, List[Expense], Optional[Attachment]], Awaitable[ExtractionResult]]


def resolve_expense_date(date_text: Optional[str], now: datetime.datetime) -> datetime.datetime:
    """Data explícita à meia-noite local, senão o momento do envio."""
    if date_text:
        return datetime.datetime.combine(datetime.date.fromisoformat(date_text), datetime.time())
    return now


def confirmation_text(description: str, amount: float, category: str, date: datetime.datetime) -> str:
    return (
        f"✅ Despesa registada: {description} ({amount:.2f} €) "
        f"na categoria '{category}' com data de {date.strftime('%d/%m/%Y')}."
    )


class ConversationReconciler:
    """Executa um turno de conversa sobre um projeto do AppState."""

    def __init__(self, state: AppState, analyze: Optional[Analyzer] = None,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        self.state = state
        self.analyze = analyze or ai.analyze_expense_message
        self.clock = clock

    @property
    def supabase_client(self):
        return self.state.supabase_client

    def is_busy(self, project_id) -> bool:
        return self.state.turns.is_active(project_id)

    async def send_message(self, project_id, text: str, attachment: Optional[Attachment] = None) -> bool:
        """Processa uma mensagem do utilizador no projeto indicado.

        O projeto é passado explicitamente, e não lido da seleção partilhada,
        para que um pedido concorrente que mude a seleção não desvie o turno.
        Devolve False se o pedido foi ignorado.
        """
        project = self.state.get_project(project_id)
        user_id = self.state.user_id
        if project is None or user_id is None:
            return False
        if not (text or "").strip() and attachment is None:
            return False

        with self.state.turns.claim(project_id) as acquired:
            if not acquired:
                logger.info("Turno já em curso no projeto %s; mensagem ignorada.", project_id)
                return False
            await self._run_turn(project, user_id, text, attachment)
        return True

    async def _run_turn(self, project: Project, user_id: str, text: str,
                        attachment: Optional[Attachment]) -> None:
        placeholder = Message.placeholder(text, attachment)
        project.messages.append(placeholder)

        try:
            image_url = None
            if attachment is not None:
                image_url = db.upload_attachment(self.supabase_client, user_id, project.id, attachment)

            user_message = db.insert_message(self.supabase_client, project.id, text, 'user', image_url)
            project.replace_message(placeholder.id, user_message)

            result = await self.analyze(text, list(project.expenses), attachment)
            bot_text = self._handle_result(project, result, image_url)

            bot_message = db.insert_message(self.supabase_client, project.id, bot_text, 'bot')
            project.messages.append(bot_message)
        except Exception as e:
            logger.exception("Erro ao processar mensagem no projeto %s: %s", project.id, e)
            self._recover(project, placeholder.id)

    def _handle_result(self, project: Project, result: ExtractionResult, image_url: Optional[str]) -> str:
        if result.is_complete_expense:
            expense_date = resolve_expense_date(result.date, self.clock())
            expense = db.insert_expense(
                self.supabase_client,
                project.id,
                description=result.description,
                category=result.category,
                amount=result.amount,
                date=expense_date.isoformat(),
                image_url=image_url,
            )
            project.expenses.append(expense)
            return confirmation_text(result.description, float(result.amount), result.category, expense_date)
        if not result.is_expense and result.response_text:
            return result.response_text
        return NOT_UNDERSTOOD_MESSAGE

    def _recover(self, project: Project, placeholder_id: str) -> None:
        project.remove_message(placeholder_id)
        try:
            fallback = db.insert_message(self.supabase_client, project.id, ERROR_MESSAGE, 'bot')
        except Exception as e:
            logger.error("Não foi possível gravar a mensagem de erro: %s", e)
            return
        project.messages.append(fallback)
