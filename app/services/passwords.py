from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12
BCRYPT_MAX_BYTES = 72


# =========================
# PASSWORD (bcrypt direto, sem passlib)
# - evita erro do passlib com bcrypt 5.x
# - bcrypt só considera os primeiros 72 bytes
# =========================
def _normalize_password_for_bcrypt(password: str) -> bytes:
    pw = (password or "").encode("utf-8")
    if len(pw) <= BCRYPT_MAX_BYTES:
        return pw
    return pw[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted, adaptive one-way hashing of user credentials."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Hash fixo usado para igualar o tempo de resposta quando o usuário não existe.
        self._dummy_hash = bcrypt.hashpw(b"timing-equalizer", bcrypt.gensalt(rounds=rounds))

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(_normalize_password_for_bcrypt(password), salt)
        return hashed.decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(
                _normalize_password_for_bcrypt(password),
                password_hash.encode("utf-8"),
            )
        except ValueError:
            # hash corrompido / formato desconhecido
            return False

    def dummy_verify(self, password: str) -> None:
        bcrypt.checkpw(_normalize_password_for_bcrypt(password), self._dummy_hash)
