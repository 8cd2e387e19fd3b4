from .safe_uint import SafeUint, checked_add, checked_sub

__all__ = ["SafeUint", "checked_add", "checked_sub"]
