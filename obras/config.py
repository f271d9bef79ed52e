# obras/config.py
import os
import logging
from dotenv import load_dotenv

load_dotenv()

# Configurações do Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "expense_images")

# Configurações do Gemini API
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Categorias que o modelo deve usar (não são validadas localmente)
EXPENSE_CATEGORIES = ["Materiais", "Mão de Obra", "Ferramentas", "Documentação", "Outros"]
ALL_CATEGORIES = "All"

# Textos mostrados ao utilizador
WELCOME_MESSAGE = (
    "Olá! Bem-vindo ao projeto '{name}'. "
    "Descreva as suas despesas ou faça uma pergunta sobre o progresso."
)
NOT_UNDERSTOOD_MESSAGE = (
    "Não entendi a sua mensagem. Pode tentar de novo? "
    "Se for uma despesa, lembre-se de incluir o item, o valor e a descrição."
)
ERROR_MESSAGE = "Desculpe, ocorreu um erro ao processar a sua mensagem. Tente novamente."
FETCH_ERROR_MESSAGE = (
    "Não foi possível carregar os seus projetos. Verifique a sua ligação "
    "ou as políticas de segurança no Supabase e tente novamente."
)
SIGN_UP_MESSAGE = "Registo efetuado com sucesso! Verifique o seu e-mail para confirmação."
