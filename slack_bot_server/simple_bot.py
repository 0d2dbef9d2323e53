"""
SimpleBot - a demonstration bot and the server's default bot factory.
"""

from .bot import Bot, on_direct_message, on_mention


class SimpleBot(Bot):
    username = "SimpleBot"

    @on_mention
    async def answer_mention(self, data):
        # data["message"] is the text with the bot's name stripped, so
        # "simple_bot: how are you?" arrives as "how are you?"
        if data["message"] == "who are you":
            await self.reply(
                text=f"I am {self.user} (id: {self.user_id}), "
                f"connected to team {self.team} (id {self.team_id})"
            )
        else:
            await self.reply(text=f"You said '{data['message']}', and I'm frankly fascinated.")

    @on_direct_message
    async def answer_direct_message(self, data):
        await self.reply(text="Hmm, OK, let me get back to you about that.")
