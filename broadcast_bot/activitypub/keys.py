import base64
import binascii
import re

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from broadcast_bot.errors import KeyImportError

_PEM_ARMOR = re.compile(r"-----(BEGIN|END) [A-Z ]+-----")


def load_private_key_pem(path: str) -> str:
    with open(path) as f:
        return f.read()


def load_public_key_pem(path: str) -> str:
    with open(path) as f:
        return f.read()


def import_private_key(pem: str) -> RSAPrivateKey:
    """
    Importa a chave privada PKCS8 em PEM.

    Remove cabeçalho/rodapé e espaços, decodifica o base64 e carrega o DER.
    Só chaves RSA são aceitas, pois a assinatura é rsa-sha256.
    """
    body = re.sub(r"\s+", "", _PEM_ARMOR.sub("", pem))
    if not body:
        raise KeyImportError("PEM da chave privada está vazio")
    try:
        der = base64.b64decode(body, validate=True)
        key = serialization.load_der_private_key(der, password=None)
    except (binascii.Error, ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyImportError(f"Chave privada inválida: {e}") from e
    if not isinstance(key, RSAPrivateKey):
        raise KeyImportError(f"Chave privada não é RSA: {type(key).__name__}")
    return key
