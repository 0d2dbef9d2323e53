"""Tests for slack_bot_server.filters"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from slack_bot_server.filters import (
    SLACKBOT_USER_ID,
    ChannelTracker,
    build_mention_patterns,
    is_bot_message,
    match_mention,
)

BOT_ID = "U123456"


class TestIsBotMessage:
    def test_plain_user_message(self):
        assert is_bot_message({"user": "U999", "text": "hi"}, BOT_ID) is False

    def test_bot_message_subtype(self):
        assert is_bot_message({"subtype": "bot_message", "text": "hi"}, BOT_ID) is True

    def test_slackbot(self):
        assert is_bot_message({"user": SLACKBOT_USER_ID}, BOT_ID) is True

    def test_own_message(self):
        assert is_bot_message({"user": BOT_ID}, BOT_ID) is True

    def test_edit_of_own_message(self):
        data = {"subtype": "message_changed", "previous_message": {"user": BOT_ID}}
        assert is_bot_message(data, BOT_ID) is True

    def test_edit_of_someone_elses_message(self):
        data = {"subtype": "message_changed", "previous_message": {"user": "U999"}}
        assert is_bot_message(data, BOT_ID) is False


class TestMatchMention:
    def patterns(self, keywords=("test_bot",)):
        return build_mention_patterns(keywords, BOT_ID)

    def test_keyword_at_start(self):
        assert match_mention("test_bot is great", self.patterns()) == "is great"

    def test_case_insensitive(self):
        assert match_mention("Test_BOT is great", self.patterns()) == "is great"

    def test_colon_separator(self):
        assert match_mention("test_bot: how are you?", self.patterns()) == "how are you?"

    def test_not_anchored_elsewhere(self):
        assert match_mention("I hate test_bot", self.patterns()) is None

    def test_keyword_needs_separator(self):
        assert match_mention("test_bots are great", self.patterns()) is None

    def test_at_mention(self):
        assert match_mention("<@U123456> is great", self.patterns()) == "is great"

    def test_at_mention_of_someone_else(self):
        assert match_mention("<@U999999> is great", self.patterns()) is None

    def test_multiple_keywords(self):
        patterns = self.patterns(("hey", "dude", "yo bot"))
        assert match_mention("hey you", patterns) == "you"
        assert match_mention("Dude what?", patterns) == "what?"
        assert match_mention("YO BOT are you there", patterns) == "are you there"

    def test_longer_keyword_wins(self):
        patterns = self.patterns(("yo", "yo bot"))
        assert match_mention("yo bot are you there", patterns) == "are you there"

    def test_keywords_are_literal(self):
        patterns = self.patterns(("a.b",))
        assert match_mention("axb hi", patterns) is None
        assert match_mention("a.b hi", patterns) == "hi"

    def test_multiline_remainder(self):
        assert match_mention("test_bot line one\nline two", self.patterns()) == "line one\nline two"

    def test_empty_text(self):
        assert match_mention(None, self.patterns()) is None
        assert match_mention("", self.patterns()) is None


class TestChannelTracker:
    @pytest.mark.asyncio
    async def test_load_snapshot(self):
        web_api = MagicMock()

        def conversations(types):
            if types == "im":
                return [{"id": "D1"}, {"id": "D2"}]
            return [{"id": "C1", "is_member": True}, {"id": "C2", "is_member": False}]

        web_api.list_conversations = AsyncMock(side_effect=conversations)
        tracker = ChannelTracker()

        await tracker.load(web_api)

        assert tracker.im_channel_ids == {"D1", "D2"}
        assert tracker.channel_ids == {"C1"}

    def test_add_im(self):
        tracker = ChannelTracker()
        tracker.add_im({"type": "im_created", "channel": {"id": "D9"}})
        assert tracker.is_im("D9")
        assert not tracker.is_im("C1")

    def test_joined_and_left(self):
        tracker = ChannelTracker()
        tracker.joined({"type": "channel_joined", "channel": {"id": "C1"}})
        assert tracker.channel_ids == {"C1"}

        # channel_left carries the bare id
        tracker.left({"type": "channel_left", "channel": "C1"})
        assert tracker.channel_ids == set()

    def test_left_unknown_channel(self):
        tracker = ChannelTracker()
        assert tracker.left({"channel": "C404"}) == "C404"
        assert tracker.channel_ids == set()
