import factory
from faker import Faker

from genstudio.schemas.job import JobRecord, JobStatus, utcnow

fake = Faker()


class JobRecordFactory(factory.Factory):
    """Factory for creating JobRecord instances."""

    class Meta:
        model = JobRecord

    id = factory.LazyFunction(lambda: fake.uuid4().replace("-", ""))
    kind = factory.LazyFunction(lambda: fake.random_element(["video", "website"]))
    status = JobStatus.PENDING
    created_at = factory.LazyFunction(utcnow)

    class Params:
        processing = factory.Trait(
            status=JobStatus.PROCESSING,
            stage="rendering",
            progress=factory.LazyFunction(lambda: fake.pyfloat(min_value=0.1, max_value=0.9)),
        )
        completed = factory.Trait(
            status=JobStatus.COMPLETED,
            progress=1.0,
            result=factory.LazyFunction(lambda: {"videoUrl": fake.url() + "video.mp4"}),
        )
        failed = factory.Trait(
            status=JobStatus.FAILED,
            error=factory.LazyFunction(lambda: fake.sentence()),
        )
