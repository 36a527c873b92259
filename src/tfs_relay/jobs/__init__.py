from pathlib import Path
from typing import Iterable, Iterator

from pydantic import ValidationError
from sanic.log import logger

from tfs_relay.exceptions import UnknownJobError
from tfs_relay.jobs.models import Job, JobsFile


class JobRegistry:
    def __init__(self, jobs: Iterable[Job] = ()):
        self._jobs: dict[str, Job] = {}
        for job in jobs:
            if job.name in self._jobs:
                raise ValueError(f"Job {job.name} is registered more than once")
            self._jobs[job.name] = job

    @classmethod
    def from_file(cls, path: str | Path) -> "JobRegistry":
        logger.debug("Loading jobs from %s", path)
        try:
            jobs_file = JobsFile.model_validate_json(Path(path).read_text())
        except ValidationError as e:
            raise ValueError(f"Invalid jobs file {path}: {e}") from e
        registry = cls(jobs_file.jobs)
        logger.info("Loaded %d jobs from %s", len(registry), path)
        return registry

    def get(self, name: str) -> Job | None:
        return self._jobs.get(name)

    def require(self, name: str) -> Job:
        job = self.get(name)
        if job is None:
            raise UnknownJobError(f"No such job: {name}")
        return job

    def __len__(self) -> int:
        return len(self._jobs)

    def __iter__(self) -> Iterator[Job]:
        return iter(self._jobs.values())
