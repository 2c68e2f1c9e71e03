"""
LLM gateway modules for Gemini integration.
"""
from .errors import ErrorKind, GatewayError
from .gemini_gateway import Attachment, GeminiGateway, RetryPolicy

__all__ = ['Attachment', 'ErrorKind', 'GatewayError', 'GeminiGateway', 'RetryPolicy']
