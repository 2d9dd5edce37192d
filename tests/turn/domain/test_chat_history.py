"""Tests for ChatHistory — the backend-native message list."""

from turnwise.scheduler.domain.call import ToolCallRequest
from turnwise.turn.domain.chat_history import ChatHistory


def _call(call_id: str, name: str = "read_file", **args: object) -> ToolCallRequest:
    return ToolCallRequest(call_id=call_id, name=name, args=args)


class TestMessages:
    def test_assistant_tool_calls_are_function_calls(self) -> None:
        chat = ChatHistory()

        chat.add_assistant(text="", tool_calls=[_call("c1", path="a.py")])

        assert chat.messages() == [
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": "c1",
                        "type": "function",
                        "function": {"name": "read_file", "arguments": '{"path": "a.py"}'},
                    }
                ],
            }
        ]

    def test_messages_are_copies(self) -> None:
        chat = ChatHistory()
        chat.add_user("hi")

        chat.messages()[0]["content"] = "changed"

        assert chat.messages()[0]["content"] == "hi"


class TestPruneCalls:
    def test_message_with_only_pruned_calls_is_dropped(self) -> None:
        chat = ChatHistory()
        chat.add_user("hi")
        chat.add_assistant(text="", tool_calls=[_call("c1")])

        chat.prune_calls(["c1"])

        assert chat.messages() == [{"role": "user", "content": "hi"}]

    def test_text_survives_pruning(self) -> None:
        chat = ChatHistory()
        chat.add_assistant(text="Let me look", tool_calls=[_call("c1")])

        chat.prune_calls(["c1"])

        assert chat.messages() == [{"role": "assistant", "content": "Let me look"}]

    def test_other_calls_are_kept(self) -> None:
        chat = ChatHistory()
        chat.add_assistant(text="", tool_calls=[_call("c1"), _call("c2")])

        chat.prune_calls(["c1"])

        ids = [c["id"] for c in chat.messages()[0]["tool_calls"]]
        assert ids == ["c2"]


class TestUnansweredCalls:
    def test_lists_calls_without_tool_message(self) -> None:
        chat = ChatHistory()
        chat.add_assistant(text="", tool_calls=[_call("c1"), _call("c2")])
        chat.add_tool_result(call_id="c1", name="read_file", content="ok")

        assert chat.unanswered_call_ids() == ["c2"]
