from .runner import ALREADY_RUNNING, JobContext, JobRunner, JobState, JobStatus, StartResult

__all__ = ["ALREADY_RUNNING", "JobContext", "JobRunner", "JobState", "JobStatus", "StartResult"]
