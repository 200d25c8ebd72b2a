"""
errors.py

Falhas tipadas do domínio de monitoramento de temperatura.

- NotFound: dispositivo ou registro de temperatura inexistente.
- StoreUnavailable: falha de I/O do banco (insert, select, update).
- ValidationError: entrada malformada, rejeitada antes de chegar ao banco.

Nenhuma camada converte essas falhas em resultado vazio/padrão:
elas sempre sobem para quem chamou.
"""


class ColdChainError(Exception):
    """Raiz de todas as falhas do domínio."""


class NotFound(ColdChainError):
    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} não encontrado: {key}")


class StoreUnavailable(ColdChainError):
    """
    O banco falhou durante `operation`.

    A exceção original fica em `__cause__` (lançada com `raise ... from exc`),
    o que permite ao chamador decidir se quer tentar novamente.
    """

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        mensagem = f"Banco indisponível durante '{operation}'"
        if detail:
            mensagem = f"{mensagem}: {detail}"
        super().__init__(mensagem)


class ValidationError(ColdChainError):
    pass
