# obras/core/ai.py
import json
import logging
from typing import List, Optional, Dict, Any

import google.generativeai as genai
from google.generativeai.types import HarmCategory, HarmBlockThreshold

from obras.config import GOOGLE_API_KEY, GEMINI_MODEL, EXPENSE_CATEGORIES
from obras.core.errors import ExtractionFailure
from obras.core.models import Expense, ExtractionResult, Attachment

logger = logging.getLogger(__name__)

if GOOGLE_API_KEY:
    genai.configure(api_key=GOOGLE_API_KEY)

safety_settings = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_NONE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_NONE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_NONE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_NONE,
}

SYSTEM_INSTRUCTION = (
    "Você é um assistente IA especializado em gestão de obras. A sua tarefa é analisar "
    "as mensagens, imagens e o contexto de despesas fornecido. Se a mensagem for sobre uma "
    "NOVA despesa, extraia os detalhes (descrição, valor, categoria e data, se mencionada) "
    "e defina 'isExpense' como true. Se nenhuma data for mencionada para a despesa, não "
    "inclua o campo de data. Se for uma pergunta sobre despesas existentes, o estado da obra, "
    "ou uma saudação, use o contexto para responder de forma útil e conversacional no campo "
    "'responseText' e defina 'isExpense' como false."
)

EXPENSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "isExpense": {
            "type": "BOOLEAN",
            "description": "O texto e/ou imagem descreve uma nova despesa de construção?",
        },
        "description": {
            "type": "STRING",
            "description": "Uma breve descrição do item da despesa. Se houver uma imagem, use-a para obter mais detalhes.",
        },
        "category": {
            "type": "STRING",
            "description": "A categoria da despesa. Opções: " + ", ".join(f"'{c}'" for c in EXPENSE_CATEGORIES) + ".",
        },
        "amount": {
            "type": "NUMBER",
            "description": "O valor numérico da despesa. Extraia-o do texto ou da imagem, se disponível.",
        },
        "date": {
            "type": "STRING",
            "description": (
                "A data da despesa no formato AAAA-MM-DD. Se o utilizador mencionar uma data "
                "(p. ex., 'hoje', 'ontem', '25 de maio'), converta-a para este formato. "
                "Se nenhuma data for mencionada, omita este campo."
            ),
        },
        "responseText": {
            "type": "STRING",
            "description": (
                "Se a mensagem do utilizador não for uma despesa (p. ex., uma pergunta ou saudação), "
                "forneça aqui uma resposta conversacional e útil. Se for uma despesa, este campo deve ser omitido."
            ),
        },
    },
    "required": ["isExpense"],
}


def build_expenses_context(expenses: List[Expense]) -> str:
    """Resume as despesas já registadas para o modelo poder responder a perguntas."""
    if not expenses:
        return "Ainda não há despesas registadas."
    resumo = [
        {
            "id": e.id,
            "descricao": e.description,
            "categoria": e.category,
            "valor": e.amount,
            "data": e.date.date().isoformat(),
        }
        for e in expenses
    ]
    return (
        "Contexto das despesas já registadas (usar para responder a perguntas): "
        + json.dumps(resumo, ensure_ascii=False)
    )


def build_content_parts(message: str, expenses: List[Expense], attachment: Optional[Attachment] = None) -> List[Any]:
    text_part = (
        f"{build_expenses_context(expenses)}\n\n"
        f'Analise a seguinte mensagem do utilizador e a imagem anexa (se houver): "{message}"'
    )
    parts: List[Any] = [text_part]
    if attachment is not None:
        parts.append(attachment.as_inline_part())
    return parts


def get_model(model: str = GEMINI_MODEL) -> genai.GenerativeModel:
    return genai.GenerativeModel(
        model_name=model,
        safety_settings=safety_settings,
        system_instruction=SYSTEM_INSTRUCTION,
        generation_config={
            "response_mime_type": "application/json",
            "response_schema": EXPENSE_SCHEMA,
        },
    )


def parse_extraction(response_text: str) -> ExtractionResult:
    """Valida o JSON devolvido pelo modelo contra o formato esperado."""
    try:
        data: Dict[str, Any] = json.loads(response_text.strip())
    except (json.JSONDecodeError, AttributeError) as e:
        raise ExtractionFailure(f"Resposta do modelo não é JSON válido: {response_text!r}") from e

    if not isinstance(data, dict) or not isinstance(data.get("isExpense"), bool):
        raise ExtractionFailure(f"Resposta do modelo fora do esquema: {response_text!r}")

    amount = data.get("amount")
    if amount is not None and not isinstance(amount, (int, float)):
        raise ExtractionFailure(f"Valor inválido na resposta do modelo: {amount!r}")

    for key in ("description", "category", "date", "responseText"):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ExtractionFailure(f"Campo '{key}' inválido na resposta do modelo")

    return ExtractionResult.from_dict(data)


async def analyze_expense_message(message: str, expenses: List[Expense],
                                  attachment: Optional[Attachment] = None) -> ExtractionResult:
    """Envia a mensagem (e a imagem, se houver) ao Gemini e devolve o resultado da extração."""
    parts = build_content_parts(message, expenses, attachment)
    try:
        response = await get_model().generate_content_async(parts)
        response_text = response.text
    except Exception as e:
        logger.error("Erro ao chamar a API do Gemini: %s", e)
        raise ExtractionFailure("Falha ao analisar a mensagem de despesa.") from e

    logger.debug("Resposta bruta do Gemini: %s", response_text)
    return parse_extraction(response_text)
