from beta_signup.services.crypto.token_cipher import TokenCipher, TokenDecryptionError

__all__ = ["TokenCipher", "TokenDecryptionError"]
