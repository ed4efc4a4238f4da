"""HTTP Basic credentials extraction."""

import base64
import binascii

from pydantic import SecretStr

from auth.exceptions import InvalidCredentialsError
from auth.types import Credential

BASIC_REALM = 'Basic realm="publish"'


def credential_from_basic_auth(authorization: str | None) -> Credential:
    """
    Decode an `Authorization: Basic <base64(user:pass)>` header value.

    Raises:
        InvalidCredentialsError: Header missing, not Basic, not base64,
            not UTF-8, or without a ':' separator.
    """
    if not authorization:
        raise InvalidCredentialsError("The request has no Authorization header")

    scheme, _, encoded = authorization.partition(" ")
    if scheme != "Basic" or not encoded:
        raise InvalidCredentialsError("The authorization scheme is not Basic")

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise InvalidCredentialsError("Failed to decode Basic credentials") from e

    username, separator, password = decoded.partition(":")
    if not separator:
        raise InvalidCredentialsError("Basic credentials have no password part")

    return Credential(username=username, password=SecretStr(password))
