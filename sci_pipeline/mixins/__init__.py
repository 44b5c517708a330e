from .identity import ObjectIdentityMixin

__all__ = ["ObjectIdentityMixin"]
