from datetime import timedelta
from uuid import uuid4

import pytest

from supporthub.core import ConfigurationException
from supporthub.shared.infrastructure import PipelineConfigManager
from supporthub.tenancy.domain import Mailbox
from tests.conftest import NOW


def make_mailbox(**kwargs) -> Mailbox:
    return Mailbox(
        id=uuid4(),
        tenant_id=uuid4(),
        address="support@acme.com",
        display_name="Acme Support",
        **kwargs,
    )


def test_never_polled_mailbox_is_due():
    assert make_mailbox().is_due(NOW)


def test_mailbox_is_due_after_its_interval():
    mailbox = make_mailbox(polling_interval_minutes=5, last_polled_at=NOW)
    assert not mailbox.is_due(NOW + timedelta(minutes=4))
    assert mailbox.is_due(NOW + timedelta(minutes=5))


def test_ignored_sender_patterns_are_case_insensitive():
    mailbox = make_mailbox(ignored_senders=("noreply@*",))

    assert mailbox.ignores("NoReply@Vendor.com")
    assert mailbox.ignores("bounce@lists.example.com", ("*@lists.example.com",))
    assert not mailbox.ignores("alice@acme.com", ("*@lists.example.com",))
    assert not mailbox.ignores("")


async def test_directory_hides_inactive_and_foreign_rows(uow_factory, seed):
    acme = await seed.tenant("acme")
    globex = await seed.tenant("globex")
    await seed.mailbox(acme.id, "support@acme.com")
    await seed.mailbox(globex.id, "help@globex.com")
    default = await seed.queue(acme.id, "Tier1", is_default=True)

    async with uow_factory() as uow:
        mailboxes = await uow.tenants.list_active_mailboxes(acme.id)
        assert [m.address for m in mailboxes] == ["support@acme.com"]
        assert (await uow.tenants.get_default_queue(acme.id)).id == default.id
        assert await uow.tenants.get_default_queue(globex.id) is None

        await uow.tenants.mark_polled(mailboxes[0].id, NOW)

    async with uow_factory() as uow:
        mailbox = await uow.tenants.get_mailbox(mailboxes[0].id)
    assert mailbox.last_polled_at == NOW


def test_pipeline_config_defaults_when_file_missing(tmp_path):
    config = PipelineConfigManager().load(tmp_path / "missing.yaml")
    assert config.ignored_senders == []


def test_pipeline_config_normalizes_patterns(tmp_path):
    path = tmp_path / "pipeline.yaml"
    path.write_text("ignored_senders:\n  - ' NoReply@* '\n  - ''\n")

    manager = PipelineConfigManager()
    manager.load(path)

    assert manager.config.ignored_senders == ["noreply@*"]


def test_pipeline_config_rejects_invalid_yaml(tmp_path):
    path = tmp_path / "pipeline.yaml"
    path.write_text("ignored_senders: [unclosed\n")

    with pytest.raises(ConfigurationException):
        PipelineConfigManager().load(path)
