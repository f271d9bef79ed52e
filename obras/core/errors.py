# obras/core/errors.py
class ObrasError(Exception):
    """Erro base da aplicação."""


class AuthError(ObrasError):
    """Falha de sessão ou credenciais (mostrada no ecrã de autenticação)."""


class FetchError(ObrasError):
    """Falha ao carregar projetos ou mensagens."""


class UploadError(ObrasError):
    """Falha ao enviar um anexo para o storage."""


class PersistError(ObrasError):
    """Falha ao gravar um registo no banco."""


class ExtractionFailure(ObrasError):
    """Falha na chamada ao modelo ou na leitura da resposta."""
