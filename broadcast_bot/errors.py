"""
broadcast_bot/errors.py

Taxonomia de erros da federação.

- MalformedInput      → corpo de requisição inválido (HTTP 400, nunca repetido)
- KeyImportError      → PEM da chave privada malformado
- SigningError        → falha na operação criptográfica de assinatura
- RemoteUnreachable   → erro de rede / timeout ao falar com um servidor remoto
- RemoteRejected      → servidor remoto respondeu com status não-2xx
- RegistryUnavailable → falha ao ler/escrever no registro de followers (HTTP 500)
"""


class FederationError(Exception):
    pass


class MalformedInput(FederationError):
    pass


class KeyImportError(FederationError):
    pass


class SigningError(FederationError):
    pass


class RemoteUnreachable(FederationError):
    pass


class RemoteRejected(FederationError):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class RegistryUnavailable(FederationError):
    pass
