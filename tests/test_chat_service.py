"""Tests for cleaners.services.chat — turn orchestration.

Collaborators are stubbed with MagicMock; the session store is real.
"""

import time
from unittest.mock import MagicMock

import pytest

from cleaners.core import (
    EmptyInput,
    GatewayError,
    PartnerShop,
    RecommendationResult,
    RetrievalError,
    Role,
    SessionMessage,
    ShopLookupError,
    StoreUnavailable,
    UserContext,
)
from cleaners.core.prompts import CONTEXT_HEADER, LAUNDRY_MASTER_PROMPT
from cleaners.services.chat import ChatService
from cleaners.services.session_store import SessionStore
from cleaners.services.shops import RecommendationEvaluator, StaticShopDirectory


def _make_service(reply="답변입니다", **overrides) -> ChatService:
    gateway = overrides.pop("gateway", None) or MagicMock()
    if gateway.complete.side_effect is None:
        gateway.complete.return_value = reply
    return ChatService(
        session_store=overrides.pop("session_store", SessionStore()),
        gateway=gateway,
        evaluator=overrides.pop("evaluator", RecommendationEvaluator(StaticShopDirectory())),
        **overrides,
    )


class TestInputValidation:
    @pytest.mark.parametrize("message", ["", "   ", "\n\t"])
    def test_blank_message_rejected_without_side_effects(self, message):
        service = _make_service()
        with pytest.raises(EmptyInput):
            service.process_message(message, "s1")
        assert service.session_store.session_count() == 0
        service.gateway.complete.assert_not_called()

    def test_empty_input_maps_to_400(self):
        err = EmptyInput()
        assert err.status_code == 400
        assert err.code == "EMPTY_MESSAGE"


class TestSessionHandling:
    def test_generates_session_id_when_missing(self):
        service = _make_service()
        result = service.process_message("안녕하세요")
        assert isinstance(result, RecommendationResult)
        assert result.session_id
        assert len(service.history(result.session_id)) == 2

    def test_generated_ids_are_unique(self):
        service = _make_service()
        ids = {service.process_message("hi").session_id for _ in range(5)}
        assert len(ids) == 5

    def test_records_user_then_assistant(self):
        service = _make_service(reply="소금을 뿌리세요")
        service.process_message("와인 얼룩은?", "s1")
        assert service.history("s1") == [
            SessionMessage(Role.USER, "와인 얼룩은?"),
            SessionMessage(Role.ASSISTANT, "소금을 뿌리세요"),
        ]

    def test_two_turns_give_four_entries(self):
        service = _make_service()
        service.process_message("첫 질문", "s1")
        service.process_message("두번째 질문", "s1")
        roles = [m.role for m in service.history("s1")]
        assert roles == [Role.USER, Role.ASSISTANT, Role.USER, Role.ASSISTANT]

    def test_clear_session_delegates(self):
        service = _make_service()
        service.process_message("hi", "s1")
        service.clear_session("s1")
        assert service.history("s1") == []

    def test_store_unavailable_propagates(self):
        store = SessionStore()
        store.close()
        service = _make_service(session_store=store)
        with pytest.raises(StoreUnavailable):
            service.process_message("hi", "s1")


class TestPromptAssembly:
    def test_prior_turns_exclude_current_message(self):
        service = _make_service(reply="a1")
        service.process_message("q1", "s1")
        service.process_message("q2", "s1")

        system_prompt, prior_turns, user_message = service.gateway.complete.call_args.args
        assert user_message == "q2"
        assert list(prior_turns) == [
            SessionMessage(Role.USER, "q1"),
            SessionMessage(Role.ASSISTANT, "a1"),
        ]
        assert system_prompt == LAUNDRY_MASTER_PROMPT

    def test_first_turn_has_no_prior_turns(self):
        service = _make_service()
        service.process_message("q1", "s1")
        _, prior_turns, _ = service.gateway.complete.call_args.args
        assert list(prior_turns) == []

    def test_context_appended_to_system_prompt(self):
        retriever = MagicMock()
        retriever.get_context.return_value = "1. 와인 얼룩\n소금"
        service = _make_service(retriever=retriever)
        service.process_message("와인 얼룩", "s1")

        retriever.get_context.assert_called_once_with("와인 얼룩")
        system_prompt = service.gateway.complete.call_args.args[0]
        assert system_prompt.endswith(f"{CONTEXT_HEADER}\n1. 와인 얼룩\n소금")

    def test_retrieval_failure_tolerated(self):
        retriever = MagicMock()
        retriever.get_context.side_effect = RetrievalError("qdrant down")
        service = _make_service(retriever=retriever, reply="ok")

        result = service.process_message("질문", "s1")

        assert result.message == "ok"
        assert service.gateway.complete.call_args.args[0] == LAUNDRY_MASTER_PROMPT

    def test_unexpected_retrieval_exception_tolerated(self):
        retriever = MagicMock()
        retriever.get_context.side_effect = ConnectionError("boom")
        service = _make_service(retriever=retriever)
        assert service.process_message("질문", "s1").message

    def test_custom_system_prompt(self):
        service = _make_service(system_prompt="CUSTOM")
        service.process_message("q", "s1")
        assert service.gateway.complete.call_args.args[0] == "CUSTOM"


class TestGatewayFailure:
    def test_gateway_error_leaves_only_user_message(self):
        gateway = MagicMock()
        gateway.complete.side_effect = GatewayError("rate limited", kind=GatewayError.RATE_LIMITED)
        service = _make_service(gateway=gateway)

        with pytest.raises(GatewayError) as exc_info:
            service.process_message("질문", "s1")

        assert exc_info.value.kind == GatewayError.RATE_LIMITED
        assert service.history("s1") == [SessionMessage(Role.USER, "질문")]

    def test_unexpected_exception_wrapped_as_transport(self):
        gateway = MagicMock()
        gateway.complete.side_effect = OSError("socket closed")
        service = _make_service(gateway=gateway)

        with pytest.raises(GatewayError) as exc_info:
            service.process_message("질문", "s1")

        assert exc_info.value.kind == GatewayError.TRANSPORT
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_retry_after_failure_sees_earlier_user_message(self):
        gateway = MagicMock()
        gateway.complete.side_effect = [GatewayError("down"), "recovered"]
        service = _make_service(gateway=gateway)

        with pytest.raises(GatewayError):
            service.process_message("q1", "s1")
        result = service.process_message("q2", "s1")

        assert result.message == "recovered"
        _, prior_turns, _ = gateway.complete.call_args.args
        assert list(prior_turns) == [SessionMessage(Role.USER, "q1")]


class TestDeadline:
    def test_expired_deadline_skips_model_call(self):
        service = _make_service()

        with pytest.raises(GatewayError) as exc_info:
            service.process_message("질문", "s1", deadline=time.monotonic() - 1)

        assert exc_info.value.timed_out
        assert exc_info.value.status_code == 504
        service.gateway.complete.assert_not_called()
        assert service.history("s1") == [SessionMessage(Role.USER, "질문")]

    def test_deadline_passing_during_model_call_drops_reply(self):
        gateway = MagicMock()
        gateway.complete.side_effect = lambda *args: time.sleep(0.2) or "늦은 답변"
        service = _make_service(gateway=gateway)

        with pytest.raises(GatewayError) as exc_info:
            service.process_message("질문", "s1", deadline=time.monotonic() + 0.05)

        assert exc_info.value.timed_out
        assert service.history("s1") == [SessionMessage(Role.USER, "질문")]

    def test_future_deadline_completes(self):
        service = _make_service(reply="괜찮아요")
        result = service.process_message("질문", "s1", deadline=time.monotonic() + 60)
        assert result.message == "괜찮아요"


class TestRecommendations:
    def test_premium_fabric_with_location_returns_shops(self):
        service = _make_service()
        result = service.process_message("실크 블라우스에 커피를 쏟았어요", "s1", location="06234")
        assert [s.name for s in result.recommended_shops] == [
            "클린마스터 세탁소",
            "프리미엄 드라이클리닝",
        ]
        assert all(s.zipcode == "06234" for s in result.recommended_shops)

    def test_no_location_means_no_shops(self):
        service = _make_service()
        result = service.process_message("실크 블라우스", "s1")
        assert result.recommended_shops == ()

    def test_not_triggered_means_no_lookup(self):
        directory = MagicMock()
        service = _make_service(evaluator=RecommendationEvaluator(directory))
        result = service.process_message("면 티셔츠 빨래 방법", "s1", location="06234")
        assert result.recommended_shops == ()
        directory.find_by_location.assert_not_called()

    def test_lookup_failure_gives_empty_shops(self):
        directory = MagicMock()
        directory.find_by_location.side_effect = ShopLookupError("index down")
        service = _make_service(evaluator=RecommendationEvaluator(directory), reply="ok")

        result = service.process_message("캐시미어 코트", "s1", location="06234")

        assert result.message == "ok"
        assert result.recommended_shops == ()

    def test_gateway_failure_skips_recommendation(self):
        directory = MagicMock()
        gateway = MagicMock()
        gateway.complete.side_effect = GatewayError("down")
        service = _make_service(gateway=gateway, evaluator=RecommendationEvaluator(directory))

        with pytest.raises(GatewayError):
            service.process_message("실크", "s1", location="06234")
        directory.find_by_location.assert_not_called()


class TestDurableMirroring:
    def test_turns_mirrored_to_conversation(self):
        store = MagicMock()
        store.get_or_create_for_session.return_value = MagicMock(id="conv-1")
        service = _make_service(conversation_store=store, reply="답")
        user = UserContext(user_id="u-1")

        service.process_message("질문", "s1", user=user)

        store.get_or_create_for_session.assert_called_once_with("s1", user, title="질문")
        assert [c.args for c in store.append_message.call_args_list] == [
            ("conv-1", Role.USER, "질문"),
            ("conv-1", Role.ASSISTANT, "답"),
        ]

    def test_store_failure_never_fails_turn(self):
        store = MagicMock()
        store.get_or_create_for_session.side_effect = StoreUnavailable("db down")
        service = _make_service(conversation_store=store, reply="ok")

        result = service.process_message("질문", "s1")

        assert result.message == "ok"
        store.append_message.assert_not_called()
        assert len(service.history("s1")) == 2

    def test_assistant_mirror_failure_tolerated(self):
        store = MagicMock()
        store.get_or_create_for_session.return_value = MagicMock(id="conv-1")
        store.append_message.side_effect = [MagicMock(), StoreUnavailable("db down")]
        service = _make_service(conversation_store=store, reply="ok")

        assert service.process_message("질문", "s1").message == "ok"

    def test_title_truncated(self):
        store = MagicMock()
        store.get_or_create_for_session.return_value = MagicMock(id="conv-1")
        service = _make_service(conversation_store=store)

        service.process_message("가" * 200, "s1")

        assert len(store.get_or_create_for_session.call_args.kwargs["title"]) == 50


class TestStaticDirectoryDefaults:
    def test_shops_are_partner_shops(self):
        shops = StaticShopDirectory().find_by_location("12345")
        assert all(isinstance(s, PartnerShop) for s in shops)
        assert shops[0].rating == 4.8
