from .auto_gen import AutoGenConfig, CronGenerationTrigger, GenerationReport, VocabularyAutoGenScheduler

__all__ = ["AutoGenConfig", "CronGenerationTrigger", "GenerationReport", "VocabularyAutoGenScheduler"]
