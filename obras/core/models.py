# obras/core/models.py
import datetime
import uuid
from typing import Optional, List, Dict, Any, Union

# Os registos chegam do Supabase como dicionários; estas classes dão-lhes forma
# e são o que circula entre o estado, o reconciliador e a agregação.

TEMP_ID_PREFIX = "temp_"


def parse_timestamp(value: Union[str, datetime.datetime, datetime.date, None]) -> Optional[datetime.datetime]:
    """Converte o valor vindo do banco para um datetime local sem fuso."""
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        dt = value
    elif isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    else:
        dt = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


class Attachment:
    def __init__(self, data: bytes, mime_type: str, filename: str = "anexo"):
        self.data = data
        self.mime_type = mime_type
        self.filename = filename

    def as_inline_part(self) -> Dict[str, Any]:
        return {"mime_type": self.mime_type, "data": self.data}


class Expense:
    def __init__(self, id: Any, description: str, category: str, amount: float,
                 date: datetime.datetime, image_url: Optional[str] = None):
        self.id = id
        self.description = description
        self.category = category
        self.amount = amount
        self.date = date
        self.image_url = image_url

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Expense":
        return cls(
            id=row["id"],
            description=row.get("description") or "",
            category=row.get("category") or "",
            amount=float(row.get("amount") or 0),
            date=parse_timestamp(row.get("date")) or datetime.datetime.now(),
            image_url=row.get("image_url"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "category": self.category,
            "amount": self.amount,
            "date": self.date.isoformat(),
            "image_url": self.image_url,
        }

    def __repr__(self):
        return f"Expense(id={self.id!r}, description={self.description!r}, amount={self.amount!r})"


class Message:
    def __init__(self, id: Any, text: str, sender: str, image_url: Optional[str] = None,
                 created_at: Optional[datetime.datetime] = None):
        self.id = id
        self.text = text
        self.sender = sender  # 'user' ou 'bot'
        self.image_url = image_url
        self.created_at = created_at
        self.pending_attachment: Optional[str] = None

    @classmethod
    def placeholder(cls, text: str, attachment: Optional[Attachment] = None) -> "Message":
        """Mensagem local mostrada antes de existir a versão gravada.

        Ainda não há URL pública para o anexo, por isso guarda-se o nome do ficheiro
        para a interface mostrar que a imagem vai a caminho.
        """
        message = cls(
            id=f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}",
            text=text,
            sender="user",
            created_at=datetime.datetime.now(),
        )
        if attachment is not None:
            message.pending_attachment = attachment.filename
        return message

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Message":
        return cls(
            id=row["id"],
            text=row.get("text") or "",
            sender=row.get("sender", "bot"),
            image_url=row.get("image_url"),
            created_at=parse_timestamp(row.get("created_at")),
        )

    @property
    def is_placeholder(self) -> bool:
        return isinstance(self.id, str) and self.id.startswith(TEMP_ID_PREFIX)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "text": self.text,
            "sender": self.sender,
            "image_url": self.image_url,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if self.pending_attachment:
            data["pending_attachment"] = self.pending_attachment
        return data

    def __repr__(self):
        return f"Message(id={self.id!r}, sender={self.sender!r}, text={self.text!r})"


class Project:
    def __init__(self, id: Any, name: str, expenses: Optional[List[Expense]] = None,
                 messages: Optional[List[Message]] = None):
        self.id = id
        self.name = name
        self.expenses = expenses if expenses is not None else []
        self.messages = messages if messages is not None else []

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Project":
        # O select de projetos traz as despesas aninhadas ('*, expenses(*)')
        return cls(
            id=row["id"],
            name=row.get("name", ""),
            expenses=[Expense.from_row(e) for e in row.get("expenses") or []],
        )

    def replace_message(self, message_id: Any, new_message: Message) -> bool:
        """Troca a mensagem com o id dado. Devolve False se não existir."""
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                self.messages[index] = new_message
                return True
        return False

    # As listas são alteradas no próprio objeto: um refresh pode partilhá-las com outro Project
    def remove_message(self, message_id: Any) -> None:
        self.messages[:] = [m for m in self.messages if m.id != message_id]

    def remove_expense(self, expense_id: Any) -> None:
        self.expenses[:] = [e for e in self.expenses if e.id != expense_id]

    @property
    def total_cost(self) -> float:
        return sum(e.amount for e in self.expenses)

    def to_dict(self, include_messages: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "total": self.total_cost,
            "expenses": [e.to_dict() for e in self.expenses],
        }
        if include_messages:
            data["messages"] = [m.to_dict() for m in self.messages]
        return data


class ExtractionResult:
    """Resultado da extração: uma despesa nova ou uma resposta de conversa."""

    def __init__(self, is_expense: bool, description: Optional[str] = None,
                 category: Optional[str] = None, amount: Optional[float] = None,
                 date: Optional[str] = None, response_text: Optional[str] = None):
        self.is_expense = is_expense
        self.description = description
        self.category = category
        self.amount = amount
        self.date = date
        self.response_text = response_text

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionResult":
        return cls(
            is_expense=data["isExpense"],
            description=data.get("description"),
            category=data.get("category"),
            amount=data.get("amount"),
            date=data.get("date"),
            response_text=data.get("responseText"),
        )

    @property
    def is_complete_expense(self) -> bool:
        # Valor 0 conta como ausente
        return bool(self.is_expense and self.amount and self.category and self.description)
