import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class JeopardyAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "jeopardy_app"

    def ready(self):
        """Validate the board configuration when Django starts up."""
        from .config import BoardConfig

        config = BoardConfig.from_settings()
        logger.debug(f"Board configuration: {config.to_dict()}")
