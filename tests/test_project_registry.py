import pytest

from chatbot_platform.core.exceptions import MissingField, RecordDecodeError
from chatbot_platform.schemas.project_schema import Project
from chatbot_platform.services.conversation import ConversationState
from chatbot_platform.services.persistent_store import PROJECTS_KEY, message_log_key
from chatbot_platform.services.project_registry import ProjectRegistry


@pytest.fixture
def registry(store, conversation):
    return ProjectRegistry(store, conversation)


def test_create_persists_camel_case_record(registry, store):
    project = registry.create("u1", "Bot", "You are terse.")

    records = store.get(PROJECTS_KEY)
    assert records == [{
        "id": project.id,
        "userId": "u1",
        "name": "Bot",
        "systemPrompt": "You are terse.",
        "createdAt": project.created_at,
    }]


@pytest.mark.parametrize("name,prompt", [("", "You are terse."), ("Bot", ""), ("  ", "x")])
def test_create_requires_name_and_prompt(registry, store, name, prompt):
    with pytest.raises(MissingField):
        registry.create("u1", name, prompt)
    assert store.get(PROJECTS_KEY) == []


def test_list_is_scoped_to_user_in_creation_order(registry):
    first = registry.create("u1", "One", "p")
    registry.create("u2", "Theirs", "p")
    second = registry.create("u1", "Two", "p")
    duplicate_name = registry.create("u1", "One", "p")

    assert [p.id for p in registry.list("u1")] == [first.id, second.id, duplicate_name.id]
    assert [p.name for p in registry.list("u2")] == ["Theirs"]
    assert registry.list("nobody") == []


def test_get_finds_by_id(registry):
    project = registry.create("u1", "Bot", "p")
    assert registry.get(project.id) == project
    assert registry.get("missing") is None


def test_delete_cascades_to_message_log(registry, store):
    keep = registry.create("u1", "Keep", "p")
    doomed = registry.create("u1", "Doomed", "p")
    store.put(message_log_key(keep.id), [{"role": "user", "content": "a"}])
    store.put(message_log_key(doomed.id), [{"role": "user", "content": "b"}])

    registry.delete(doomed.id)

    assert all(r["id"] != doomed.id for r in store.get(PROJECTS_KEY))
    assert message_log_key(doomed.id) not in store.keys()
    assert store.keys("messages_") == [message_log_key(keep.id)]


def test_delete_clears_active_conversation(registry, conversation):
    project = registry.create("u1", "Bot", "p")
    conversation.select_project(project)
    assert conversation.active_project_id == project.id

    registry.delete(project.id)

    assert conversation.project is None
    assert conversation.history == []
    assert conversation.state is ConversationState.AWAITING_PROJECT_SELECTION


def test_delete_of_inactive_project_keeps_conversation(registry, conversation):
    active = registry.create("u1", "Active", "p")
    other = registry.create("u1", "Other", "p")
    conversation.select_project(active)

    registry.delete(other.id)

    assert conversation.active_project_id == active.id
    assert conversation.state is ConversationState.READY


def test_records_validate_back_into_projects(registry, store):
    project = registry.create("u1", "Bot", "p")
    assert Project.model_validate(store.get(PROJECTS_KEY)[0]) == project


@pytest.mark.parametrize("records", [
    [{"id": "p1", "name": "Bot"}],
    ["not-a-record"],
])
def test_corrupt_project_records_are_decode_errors(registry, store, records):
    store.put(PROJECTS_KEY, records)
    with pytest.raises(RecordDecodeError):
        registry.list("u1")
