from .assistant import AssistantController

__all__ = ("AssistantController",)
