# obras/core/db.py
import logging
import time
from typing import List, Optional, Any

from supabase import create_client, Client

from obras.config import SUPABASE_URL, SUPABASE_KEY, STORAGE_BUCKET, WELCOME_MESSAGE
from obras.core.errors import FetchError, PersistError, UploadError
from obras.core.models import Project, Expense, Message, Attachment

logger = logging.getLogger(__name__)


def get_supabase_client() -> Client:
    """Retorna uma instância do cliente Supabase."""
    return create_client(SUPABASE_URL, SUPABASE_KEY)


def _single_row(response, table: str) -> dict:
    if not response.data:
        raise PersistError(f"Insert em '{table}' não devolveu o registo criado.")
    return response.data[0]


# --- Funções para Projetos ---
def get_projects(supabase_client: Client) -> List[Project]:
    """Obtém os projetos do utilizador, com as despesas, por ordem de criação."""
    try:
        response = supabase_client.table('projects').select('*, expenses(*)').order('created_at').execute()
    except Exception as e:
        logger.error("Erro ao obter projetos do Supabase: %s", e)
        raise FetchError("Falha ao carregar projetos.") from e
    return [Project.from_row(row) for row in response.data]


def create_project(supabase_client: Client, name: str, user_id: str) -> Project:
    """Cria o projeto e grava a mensagem de boas-vindas do bot."""
    try:
        response = supabase_client.table('projects').insert({"name": name, "user_id": user_id}).execute()
        row = _single_row(response, 'projects')
    except PersistError:
        raise
    except Exception as e:
        logger.error("Erro ao criar projeto no Supabase: %s", e)
        raise PersistError("Falha ao criar projeto.") from e

    project = Project.from_row(row)
    welcome = insert_message(supabase_client, project.id, WELCOME_MESSAGE.format(name=name), 'bot')
    project.messages.append(welcome)
    return project


# --- Funções para Mensagens ---
def get_messages(supabase_client: Client, project_id: Any) -> List[Message]:
    """Obtém a conversa de um projeto por ordem de criação."""
    try:
        response = supabase_client.table('messages').select('*').eq('project_id', project_id).order('created_at').execute()
    except Exception as e:
        logger.error("Erro ao obter mensagens do projeto %s: %s", project_id, e)
        raise FetchError("Falha ao carregar mensagens.") from e
    return [Message.from_row(row) for row in response.data]


def insert_message(supabase_client: Client, project_id: Any, text: str, sender: str,
                   image_url: Optional[str] = None) -> Message:
    record = {"project_id": project_id, "text": text, "sender": sender}
    if image_url:
        record["image_url"] = image_url
    try:
        response = supabase_client.table('messages').insert(record).execute()
        row = _single_row(response, 'messages')
    except PersistError:
        raise
    except Exception as e:
        logger.error("Erro ao gravar mensagem no Supabase: %s", e)
        raise PersistError("Falha ao gravar mensagem.") from e
    return Message.from_row(row)


# --- Funções para Despesas ---
def insert_expense(supabase_client: Client, project_id: Any, description: str, category: str,
                   amount: float, date: str, image_url: Optional[str] = None) -> Expense:
    """Grava uma despesa nova; `date` é uma string ISO."""
    try:
        response = supabase_client.table('expenses').insert({
            "project_id": project_id,
            "description": description,
            "category": category,
            "amount": amount,
            "date": date,
            "image_url": image_url,
        }).execute()
        row = _single_row(response, 'expenses')
    except PersistError:
        raise
    except Exception as e:
        logger.error("Erro ao adicionar despesa ao Supabase: %s", e)
        raise PersistError("Falha ao gravar despesa.") from e
    return Expense.from_row(row)


def delete_expense(supabase_client: Client, expense_id: Any) -> None:
    try:
        supabase_client.table('expenses').delete().eq('id', expense_id).execute()
    except Exception as e:
        logger.error("Erro ao apagar despesa %s: %s", expense_id, e)
        raise PersistError("Falha ao apagar despesa.") from e


# --- Storage ---
def attachment_path(user_id: str, project_id: Any, filename: str) -> str:
    return f"{user_id}/{project_id}/{int(time.time() * 1000)}_{filename}"


def upload_attachment(supabase_client: Client, user_id: str, project_id: Any, attachment: Attachment) -> str:
    """Envia o anexo para o bucket e devolve o URL público."""
    path = attachment_path(user_id, project_id, attachment.filename)
    try:
        bucket = supabase_client.storage.from_(STORAGE_BUCKET)
        bucket.upload(path, attachment.data, {"content-type": attachment.mime_type})
        return bucket.get_public_url(path)
    except Exception as e:
        logger.error("Erro ao enviar anexo '%s': %s", path, e)
        raise UploadError("Falha ao enviar anexo.") from e
