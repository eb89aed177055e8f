import pytest

from scribe_rag.core.exceptions import (
    CompositionError,
    ConfigurationError,
    DataIntegrityError,
    IndexUnavailableError,
)
from scribe_rag.core.models.chat import ChatMessage, LectureContext, TopicResource
from scribe_rag.core.services.answer_composer import (
    APOLOGY_MESSAGE,
    LOW_CONFIDENCE_NOTE,
    NO_CONTEXT_MESSAGE,
    AnswerComposer,
)
from scribe_rag.core.services.chat_service import ChatService
from scribe_rag.core.services.response_cache import ResponseCache
from scribe_rag.core.services.retrieval_service import Retriever

from tests.fakes import FakeLLM, InMemoryChunkStore, InMemoryDocumentStore


def make_chat(retriever, llm):
    return ChatService(
        retriever=retriever,
        composer=AnswerComposer(llm, timeout=0.2),
        cache=ResponseCache(),
    )


@pytest.mark.asyncio
async def test_answer_with_sources(retriever):
    llm = FakeLLM("Use the inhaler as shown [Asthma].")
    chat = make_chat(retriever, llm)

    answer = await chat.ask("how do inhalers work", "gp")

    assert answer.response == "Use the inhaler as shown [Asthma]."
    assert [s.title for s in answer.sources] == ["Asthma", "Diabetes"]
    assert answer.from_cache is False
    assert answer.degraded is False
    assert answer.retryable is False

    messages = llm.calls[0]["messages"]
    assert "medical" in messages[0]["content"]
    assert "asthma inhaler technique" in messages[-1]["content"]
    assert "how do inhalers work" in messages[-1]["content"]
    assert llm.calls[0]["temperature"] == 0.5
    assert llm.calls[0]["max_tokens"] == 1000


@pytest.mark.asyncio
async def test_second_ask_is_served_from_cache(retriever):
    llm = FakeLLM()
    chat = make_chat(retriever, llm)

    await chat.ask("how do inhalers work", "gp")
    answer = await chat.ask("how do  inhalers work", "gp")

    assert answer.from_cache is True
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_modes_are_cached_separately(retriever):
    llm = FakeLLM()
    chat = make_chat(retriever, llm)

    await chat.ask("how do inhalers work", "gp")
    answer = await chat.ask("how do inhalers work", "school")

    assert answer.from_cache is False
    assert "teaching" in llm.calls[1]["messages"][0]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [CompositionError("rate limited"), ConfigurationError("model not found")],
)
async def test_completion_failure_is_apology_and_not_cached(retriever, error):
    llm = FakeLLM(error=error)
    chat = make_chat(retriever, llm)

    answer = await chat.ask("how do inhalers work")
    assert answer.response == APOLOGY_MESSAGE
    assert answer.sources == []
    assert answer.retryable is True

    llm.error = None
    answer = await chat.ask("how do inhalers work")
    assert answer.response == "An answer."
    assert answer.from_cache is False


@pytest.mark.asyncio
async def test_completion_timeout_is_apology(retriever):
    chat = make_chat(retriever, FakeLLM(delay=1.0))

    answer = await chat.ask("how do inhalers work")

    assert answer.response == APOLOGY_MESSAGE
    assert answer.retryable is True


@pytest.mark.asyncio
async def test_empty_completion_is_apology(retriever):
    chat = make_chat(retriever, FakeLLM(reply="   "))

    answer = await chat.ask("how do inhalers work")

    assert answer.response == APOLOGY_MESSAGE


@pytest.mark.asyncio
async def test_random_context_is_flagged_low_confidence(retriever, chunk_store):
    chunk_store.search_error = IndexUnavailableError("no vector extension")
    llm = FakeLLM()
    chat = make_chat(retriever, llm)

    answer = await chat.ask("completely unrelated words")

    assert answer.low_confidence is True
    assert answer.degraded is True
    system_notes = [m["content"] for m in llm.calls[0]["messages"] if m["role"] == "system"]
    assert LOW_CONFIDENCE_NOTE in system_notes


@pytest.mark.asyncio
async def test_no_context_does_not_call_model(embedder):
    retriever = Retriever(embedder, InMemoryChunkStore(), InMemoryDocumentStore())
    llm = FakeLLM()
    chat = make_chat(retriever, llm)

    answer = await chat.ask("anything")

    assert answer.response == NO_CONTEXT_MESSAGE
    assert llm.calls == []
    assert answer.degraded is True


@pytest.mark.asyncio
async def test_transient_document_failure_is_retryable_apology(retriever, document_store):
    document_store.delay = 1.0
    chat = make_chat(retriever, FakeLLM())

    answer = await chat.ask("how do inhalers work")

    assert answer.response == APOLOGY_MESSAGE
    assert answer.retryable is True


@pytest.mark.asyncio
async def test_data_integrity_error_propagates(retriever, document_store):
    document_store.documents.clear()
    chat = make_chat(retriever, FakeLLM())

    with pytest.raises(DataIntegrityError):
        await chat.ask("how do inhalers work")


@pytest.mark.asyncio
async def test_lecture_reply_uses_lecture_context(retriever):
    llm = FakeLLM("Mitosis has four phases.")
    chat = make_chat(retriever, llm)
    lecture = LectureContext(
        summary="Cell division basics.",
        topics=["mitosis", "meiosis"],
        topic_resources=[TopicResource("mitosis", "Somatic division", videos=["v1"])],
    )

    answer = await chat.ask_about_lecture(
        [ChatMessage("user", "How many phases does mitosis have?")], lecture
    )

    assert answer.response == "Mitosis has four phases."
    call = llm.calls[0]
    assert "Cell division basics." in call["messages"][0]["content"]
    assert "1 videos, 0 articles" in call["messages"][0]["content"]
    assert call["messages"][-1] == {
        "role": "user",
        "content": "How many phases does mitosis have?",
    }
    assert call["temperature"] == 0.7
    assert call["max_tokens"] == 500


@pytest.mark.asyncio
async def test_to_dict_uses_camel_case(retriever):
    chat = make_chat(retriever, FakeLLM())

    data = (await chat.ask("how do inhalers work")).to_dict()

    assert set(data) == {"response", "sources", "fromCache", "degraded", "lowConfidence"}
    assert data["sources"][0]["publishedDate"] is None
