from __future__ import annotations


class JobError(Exception):
    pass


class JobNotFoundError(JobError):
    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class InvalidJobTransitionError(JobError):
    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f"Job {job_id} cannot move from {current} to {target}")
        self.job_id = job_id
        self.current = current
        self.target = target


class JobAlreadyRunningError(JobError):
    def __init__(self, job_id: str, status: str):
        super().__init__(f"Job {job_id} is already {status}")
        self.job_id = job_id
        self.status = status
