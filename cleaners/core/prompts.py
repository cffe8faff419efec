"""
LLM prompt templates and prompt assembly.

The assistant persona is a laundry master with thirty years of experience.
Retrieved knowledge is appended to the system instruction rather than to
the user turn, so the user's words reach the model verbatim.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from cleaners.core.models import KnowledgeItem, Role, SessionMessage


LAUNDRY_MASTER_PROMPT = """너는 30년 경력의 세탁 장인이다. 세탁, 얼룩 제거, 의류 소재 관리에 대해 전문적이고 솔직하게 답변한다.

## 응답 규칙
1. 될 수 있는 것과 안 되는 것을 명확히 구분해서 말해라
2. 성공 확률을 구체적으로 설명해라 (예: "이 경우 성공률은 30~40% 정도입니다")
3. 집에서 시도할 때의 위험성을 반드시 경고해라
4. 책임 회피 없이 현실적인 조언을 해라
5. 100% 성공을 보장하는 표현은 절대 사용하지 마라

## 파트너 세탁소 추천 조건
다음 조건 중 하나라도 해당되면 전문 세탁소를 추천해라:
- 성공 확률이 60% 미만인 경우
- 고급 소재인 경우 (실크, 캐시미어, 가죽, 울, 린넨 등)
- 얼룩 발생 후 48시간이 초과된 경우
- 고객이 "맡기면 나을까요?" 또는 유사한 질문을 한 경우

## 말투
- 친근하지만 전문가다운 말투를 사용해라
- "이건 집에서 건드리면 거의 망가집니다" 같은 직설적 표현을 써라
- 경험에서 우러나온 조언처럼 말해라"""


CONTEXT_HEADER = "## 관련 세탁 지식:"

KNOWLEDGE_CONTEXT_TITLE = "관련 세탁 지식:"


def build_system_prompt(context: str = "", base_prompt: str = LAUNDRY_MASTER_PROMPT) -> str:
    """
    Append retrieved context to the persona instruction.

    Args:
        context: Retrieved knowledge block. Ignored when blank.
        base_prompt: Persona/policy text.

    Returns:
        The single system instruction sent to the model.
    """
    if not context or not context.strip():
        return base_prompt
    return f"{base_prompt}\n\n{CONTEXT_HEADER}\n{context.strip()}"


def build_chat_messages(
    system_prompt: str,
    prior_turns: Sequence[SessionMessage],
    user_message: str,
) -> list[dict[str, str]]:
    """
    Build the ordered message list: system, prior turns, current user turn.

    Args:
        system_prompt: Full system instruction (context already merged).
        prior_turns: Session history excluding the current message.
        user_message: The current user message, always sent last.

    Returns:
        OpenAI-style list of {"role", "content"} dicts.
    """
    messages = [{"role": Role.SYSTEM.value, "content": system_prompt}]
    messages.extend(turn.to_chat_turn() for turn in prior_turns)
    messages.append({"role": Role.USER.value, "content": user_message})
    return messages


def split_prior_turns(
    history: Sequence[SessionMessage],
    user_message: str,
) -> list[SessionMessage]:
    """
    Drop the just-appended current user message from a history snapshot.

    The orchestrator appends the user turn before reading history. The most
    recent matching user entry is removed; a concurrent turn on the same
    session may have landed after it, so it is not assumed to be last.
    """
    current = SessionMessage(Role.USER, user_message)
    for i in range(len(history) - 1, -1, -1):
        if history[i] == current:
            return list(history[:i]) + list(history[i + 1 :])
    return list(history)


def format_knowledge_context(items: Iterable[KnowledgeItem]) -> str:
    """
    Format retrieved knowledge items as a numbered context block.

    Returns an empty string when there are no items.
    """
    items = list(items)
    if not items:
        return ""

    body = "\n\n".join(
        f"{i}. {item.title}\n{item.content}" for i, item in enumerate(items, 1)
    )
    return f"{KNOWLEDGE_CONTEXT_TITLE}\n\n{body}"


__all__ = [
    "LAUNDRY_MASTER_PROMPT",
    "CONTEXT_HEADER",
    "build_system_prompt",
    "build_chat_messages",
    "split_prior_turns",
    "format_knowledge_context",
]
