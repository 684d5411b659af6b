from revision_bot import engine, models, storage
from revision_bot.models.batch_models import BatchEditReport as CoreBatchEditReport
from revision_bot.models.document_models import Version as CoreVersion


def test_public_model_exports_remain_compatible():
    assert models.Version is CoreVersion
    assert models.BatchEditReport is CoreBatchEditReport
    for name in models.__all__:
        assert hasattr(models, name)


def test_engine_and_storage_exports():
    for package in (engine, storage):
        for name in package.__all__:
            assert hasattr(package, name)
    assert engine.EditSession.__module__ == "revision_bot.engine.suggestions"
