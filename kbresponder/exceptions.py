"""Custom exception classes"""


class ChatbotException(Exception):
    """Base exception for chatbot"""
    pass


class ValidationException(ChatbotException):
    """Validation errors"""
    pass


class KnowledgeBaseValidationError(ValidationException):
    """Knowledge base input is invalid or unsupported"""
    pass


class KnowledgeBaseNotFoundError(ChatbotException):
    """Referenced knowledge base entity does not exist"""
    
    def __init__(self, entity_id: int, entity: str = "Knowledge base entry"):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity_id = entity_id


class ExternalAPIException(ChatbotException):
    """External API errors (embedding and completion providers)"""
    pass
