"""arq worker settings module.

Import path for arq CLI: arq streakbet.workers.settings.WagerWorkerSettings
"""

from __future__ import annotations

from streakbet.wagers.worker import WagerWorkerSettings

__all__ = ["WagerWorkerSettings"]
