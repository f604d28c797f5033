# zenboard application context
# Rev 0.3.0

from __future__ import annotations
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Optional

from .repositories.db import Database
from .services.calendar_feed import CalendarFeed, SettingsGatedFeed
from .services.scheduling_service import SchedulingService
from .utils.config import SchedulingConfig, load_settings
from .utils.logging_setup import get_logger


@dataclass
class AppContext:
    """Central container for shared app resources."""
    db_path: Path
    db: Database
    config: SchedulingConfig
    scheduling: SchedulingService
    feed: CalendarFeed

    @classmethod
    def create(
        cls,
        db_path: Optional[Path] = None,
        settings: Optional[Dict[str, Any]] = None,
        *,
        feed_source: Optional[CalendarFeed] = None,
        tz: Optional[tzinfo] = None,
    ) -> "AppContext":
        """Open the DB, apply pending migrations and wire the services."""
        log = get_logger("AppContext")
        settings = settings if settings is not None else load_settings()
        config = SchedulingConfig.from_settings(settings)
        db = Database(db_path)
        db.run_migrations()
        scheduling = SchedulingService(db, config=config, tz=tz)
        feed = SettingsGatedFeed(feed_source, config.feed_enabled)
        log.info("AppContext initialized with DB=%s", db.path)
        return cls(db_path=db.path, db=db, config=config, scheduling=scheduling, feed=feed)

    def close(self) -> None:
        self.db.close()
