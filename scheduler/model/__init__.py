from scheduler.model.scheduler import JobSlot, JobState, SchedulerConfig

__all__ = ["JobSlot", "JobState", "SchedulerConfig"]
