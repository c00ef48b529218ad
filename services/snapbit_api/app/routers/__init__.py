from . import oauth, tokens

__all__ = ["oauth", "tokens"]
