"""Care seeker profiles and provider inquiries"""

from .router import inquiries_router, router

__all__ = ["router", "inquiries_router"]
