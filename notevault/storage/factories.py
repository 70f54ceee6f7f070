"""factory_boy factories for store rows and import payload entries (tests only)."""

import factory
from factory.alchemy import SQLAlchemyModelFactory

from notevault.data_models.records import ROOT_FOLDER_ID
from notevault.storage.models import FileRecord, FolderRecord
from notevault.utils.timestamps import now_ms


class FolderRecordFactory(SQLAlchemyModelFactory):
    class Meta:
        model = FolderRecord
        sqlalchemy_session_persistence = "commit"

    id = factory.Faker("uuid4")
    name = factory.Sequence(lambda n: f"folder-{n}")
    parent_id = ROOT_FOLDER_ID
    created_at = factory.LazyFunction(now_ms)
    updated_at = factory.LazyAttribute(lambda o: o.created_at)


class FileRecordFactory(SQLAlchemyModelFactory):
    class Meta:
        model = FileRecord
        sqlalchemy_session_persistence = "commit"

    id = factory.Faker("uuid4")
    name = factory.Sequence(lambda n: f"note-{n}.md")
    content = factory.Faker("paragraph")
    folder_id = ROOT_FOLDER_ID
    created_at = factory.LazyFunction(now_ms)
    updated_at = factory.LazyAttribute(lambda o: o.created_at)


class FolderEntryFactory(factory.DictFactory):
    """A folder as it appears in an export payload."""

    id = factory.Faker("uuid4")
    name = factory.Sequence(lambda n: f"folder-{n}")
    parentId = None
    createdAt = factory.LazyFunction(now_ms)
    updatedAt = factory.SelfAttribute("createdAt")


class FileEntryFactory(factory.DictFactory):
    """A file as it appears in an export payload."""

    id = factory.Faker("uuid4")
    name = factory.Sequence(lambda n: f"note-{n}.md")
    content = factory.Faker("paragraph")
    folderId = ROOT_FOLDER_ID
    createdAt = factory.LazyFunction(now_ms)
    updatedAt = factory.SelfAttribute("createdAt")


def build_payload(folders=(), files=(), version="1.0", exported_at=None) -> dict:
    return {
        "version": version,
        "exportedAt": exported_at if exported_at is not None else now_ms(),
        "folders": list(folders),
        "files": list(files),
    }
