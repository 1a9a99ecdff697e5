"""
Quiz server module.

This module serves quizzes and scores submitted answers over the QUIZ tag.
"""

import asyncio
import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional

from netquiz.common.constants import QuizCommands, QUIZZES_FILE
from netquiz.common.framing import (
    encode_bool, encode_int, encode_utf, read_int, read_utf
)
from netquiz.common.protocol_definitions import create_new_quiz_notification
from netquiz.server.notification.notification_server import NotificationServer
from netquiz.server.utils.logger import logger


@dataclass
class Question:
    """Quiz question structure."""
    question: str
    options: List[str]
    correct_answer: int

    def is_correct(self, answer: int) -> bool:
        return answer == self.correct_answer


@dataclass
class Quiz:
    """Quiz structure."""
    id: str
    title: str
    questions: List[Question]

    @classmethod
    def from_dict(cls, data: dict) -> 'Quiz':
        return cls(
            id=data['id'],
            title=data['title'],
            questions=[Question(q['question'], list(q['options']), int(q['correct_answer']))
                       for q in data.get('questions', [])]
        )

    def to_dict(self) -> dict:
        return asdict(self)


def sample_quizzes() -> List[Quiz]:
    """Quizzes available when no quiz file exists yet."""
    return [
        Quiz('QUIZ001', 'General Knowledge Quiz', [
            Question('What is the capital of France?', ['London', 'Paris', 'Berlin', 'Madrid'], 1),
            Question('Which programming language runs on the JVM?', ['Python', 'Java', 'C++', 'JavaScript'], 1),
            Question('What does TCP stand for?', ['Transfer Control Protocol', 'Transmission Control Protocol',
                                                  'Transport Communication Protocol', 'Technical Control Protocol'], 1),
        ]),
        Quiz('QUIZ002', 'Basic Quiz', [
            Question('What is 2 + 2?', ['3', '4', '5', '6'], 1),
            Question('What is the largest planet in our solar system?', ['Mars', 'Jupiter', 'Saturn', 'Neptune'], 1),
            Question('Who wrote Romeo and Juliet?', ['Charles Dickens', 'William Shakespeare', 'Jane Austen', 'Mark Twain'], 1),
        ]),
    ]


class QuizServer:
    """Server-side quiz functionality."""

    def __init__(self, quizzes_file: str = QUIZZES_FILE, notifier: Optional[NotificationServer] = None):
        self.quizzes_file = Path(quizzes_file)
        self.notifier = notifier
        self.quizzes: Dict[str, Quiz] = {}  # quiz id -> quiz
        self.scores: Dict[str, int] = {}  # user id -> last score
        self.load_quizzes()

    def load_quizzes(self):
        """Load quizzes from disk, seeding the file if it does not exist."""
        if not self.quizzes_file.exists():
            for quiz in sample_quizzes():
                self.quizzes[quiz.id] = quiz
            self.save_quizzes()
            return

        try:
            with open(self.quizzes_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            for quiz_id, quiz_data in data.items():
                self.quizzes[quiz_id] = Quiz.from_dict(quiz_data)
            logger.info(f"[QUIZ] Loaded {len(self.quizzes)} quizzes from {self.quizzes_file}")
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"[QUIZ] Error loading quizzes: {e}")

    def save_quizzes(self):
        try:
            with open(self.quizzes_file, 'w', encoding='utf-8') as f:
                json.dump({qid: quiz.to_dict() for qid, quiz in self.quizzes.items()}, f, indent=2)
        except OSError as e:
            logger.error(f"[QUIZ] Error saving quizzes: {e}")

    def add_quiz(self, quiz: Quiz):
        """Publish a new quiz and announce it."""
        self.quizzes[quiz.id] = quiz
        self.save_quizzes()
        if self.notifier:
            self.notifier.announce(create_new_quiz_notification(quiz.title))

    def calculate_score(self, quiz_id: str, answers: List[int]) -> int:
        """Count answers matching the correct option; unknown quizzes score 0."""
        quiz = self.quizzes.get(quiz_id)
        if quiz is None:
            return 0
        return sum(1 for question, answer in zip(quiz.questions, answers) if question.is_correct(answer))

    async def handle_request(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Serve one quiz command; the connection is closed afterwards."""
        try:
            command = await read_utf(reader)
            logger.info(f"[QUIZ] Command: {command}")

            if command == QuizCommands.LIST_QUIZZES:
                titles = [f"{quiz.id}:{quiz.title}" for quiz in self.quizzes.values()]
                writer.write(encode_int(len(titles)) + b''.join(encode_utf(t) for t in titles))
            elif command == QuizCommands.GET_QUIZ:
                quiz = self.quizzes.get(await read_utf(reader))
                if quiz is None:
                    writer.write(encode_bool(False))
                else:
                    writer.write(encode_bool(True) + encode_utf(json.dumps(quiz.to_dict())))
            elif command == QuizCommands.SUBMIT_ANSWERS:
                user_id = await read_utf(reader)
                quiz_id = await read_utf(reader)
                count = await read_int(reader)
                answers = [await read_int(reader) for _ in range(max(count, 0))]
                score = self.calculate_score(quiz_id, answers)
                self.scores[user_id] = score
                logger.log_quiz_score(user_id, quiz_id, score)
                writer.write(encode_int(score))
            else:
                logger.warning(f"[QUIZ] Unknown command: {command}")
            await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError, OSError, ValueError) as e:
            logger.error(f"[QUIZ] Handler error: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass
