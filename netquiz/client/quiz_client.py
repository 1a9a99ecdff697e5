"""
Quiz client module.

Each call opens its own connection, as the server closes it after one command.
"""

import asyncio
import json
from typing import List, Optional

from netquiz.common.constants import DEFAULT_HOST, DEFAULT_PORT, RequestTags, QuizCommands
from netquiz.common.framing import encode_int, encode_utf, read_bool, read_int, read_utf


class QuizClient:
    """Client-side quiz functionality."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.host = host
        self.port = port

    async def _open(self, command: str):
        reader, writer = await asyncio.open_connection(self.host, self.port)
        writer.write(encode_utf(RequestTags.QUIZ) + encode_utf(command))
        return reader, writer

    async def list_quizzes(self) -> List[str]:
        """Returns "<id>:<title>" entries."""
        reader, writer = await self._open(QuizCommands.LIST_QUIZZES)
        try:
            await writer.drain()
            count = await read_int(reader)
            return [await read_utf(reader) for _ in range(count)]
        finally:
            writer.close()

    async def get_quiz(self, quiz_id: str) -> Optional[dict]:
        reader, writer = await self._open(QuizCommands.GET_QUIZ)
        try:
            writer.write(encode_utf(quiz_id))
            await writer.drain()
            if not await read_bool(reader):
                return None
            return json.loads(await read_utf(reader))
        finally:
            writer.close()

    async def submit_answers(self, user_id: str, quiz_id: str, answers: List[int]) -> int:
        reader, writer = await self._open(QuizCommands.SUBMIT_ANSWERS)
        try:
            writer.write(encode_utf(user_id) + encode_utf(quiz_id) + encode_int(len(answers)) +
                         b''.join(encode_int(a) for a in answers))
            await writer.drain()
            return await read_int(reader)
        finally:
            writer.close()
