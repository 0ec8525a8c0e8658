from app.api.schemas.podcast import ConversationStreamEvent, ErrorResponse, PodcastPreviewRequest

__all__ = ["ConversationStreamEvent", "ErrorResponse", "PodcastPreviewRequest"]
