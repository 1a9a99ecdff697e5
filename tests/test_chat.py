#!/usr/bin/env python3
"""
Unit tests for chat fan-out, command handling and departure.

Tests:
- Public chat reaches everyone but the sender
- Private messages reach exactly one session
- Commands are answered on the sender's connection only
- A failed write is handled as that target's disconnect
- Disconnect announces a departure exactly once
- Lines and usernames too long for a frame are refused without a disconnect
"""

import asyncio
import unittest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from netquiz.client.chat_client import read_record
from netquiz.common.constants import HELP_LINES, RecordTypes
from netquiz.common.framing import read_bool, read_utf
from netquiz.common.protocol_definitions import EventKind, create_broadcast_event
from netquiz.server.chat.chat_hub import ChatHub
from netquiz.server.chat.commands import CommandInterpreter, MESSAGE_TOO_LONG, PRIVATE_USAGE, parse_line
from netquiz.server.notification.notification_server import NotificationServer
from netquiz.server.users.registry import Session, SessionRegistry
from netquiz.server.users.user_server import UserServer


class FakeWriter:
    """StreamWriter stand-in that records written bytes."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.closed = False
        self.data = bytearray()

    def write(self, data):
        if self.fail:
            raise ConnectionResetError('Connection reset by peer')
        self.data.extend(data)

    async def drain(self):
        pass

    def is_closing(self):
        return self.closed

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass

    async def records(self, skip_login_reply: bool = False):
        reader = asyncio.StreamReader()
        reader.feed_data(bytes(self.data))
        reader.feed_eof()
        if skip_login_reply:
            await read_bool(reader)
            await read_utf(reader)
        records = []
        while not reader.at_eof():
            records.append(await read_record(reader))
        return records


class TestParseLine(unittest.TestCase):
    """Test cases for chat line parsing."""

    def test_public_chat(self):
        event = parse_line('  hello world ', 'alice')
        self.assertEqual(event.kind, EventKind.BROADCAST)
        self.assertEqual(event.text, 'hello world')

    def test_blank_line_ignored(self):
        self.assertIsNone(parse_line('   ', 'alice'))

    def test_private_message(self):
        event = parse_line('/msg bob how are you', 'alice')
        self.assertEqual(event.kind, EventKind.PRIVATE)
        self.assertEqual((event.sender, event.recipient, event.text), ('alice', 'bob', 'how are you'))

    def test_private_missing_message(self):
        for line in ('/msg', '/msg bob', '/msg   '):
            event = parse_line(line, 'alice')
            self.assertEqual(event.kind, EventKind.ERROR, line)
            self.assertEqual(event.text, PRIVATE_USAGE)

    def test_commands(self):
        self.assertEqual(parse_line('/users', 'alice').kind, EventKind.USER_LIST_REFRESH)
        self.assertEqual(parse_line('/help', 'alice').kind, EventKind.HELP)

    def test_command_prefix_inside_word_is_chat(self):
        self.assertEqual(parse_line('/msgbob hi', 'alice').kind, EventKind.BROADCAST)


class ChatTestCase(unittest.IsolatedAsyncioTestCase):
    """Registry with alice, bob and carol logged in."""

    async def asyncSetUp(self):
        self.registry = SessionRegistry()
        self.failures = []

        async def on_failure(session):
            self.failures.append(session.username)
            await self.registry.remove(session)

        self.hub = ChatHub(self.registry, on_failure=on_failure)
        self.interpreter = CommandInterpreter(self.registry, self.hub)
        self.writers = {}
        self.sessions = {}
        for name in ('alice', 'bob', 'carol'):
            await self.add_user(name)

    async def add_user(self, name, fail=False):
        self.writers[name] = FakeWriter(fail=fail)
        self.sessions[name] = Session(name, self.writers[name])
        await self.registry.add(self.sessions[name])


class TestChatHub(ChatTestCase):
    """Test cases for ChatHub fan-out."""

    async def test_broadcast_excludes_sender(self):
        delivered = await self.hub.broadcast(create_broadcast_event('alice', 'hello'), exclude={'alice'})

        self.assertEqual(delivered, 2)
        self.assertEqual(await self.writers['alice'].records(), [])
        for name in ('bob', 'carol'):
            records = await self.writers[name].records()
            self.assertEqual([(r.type, r.text) for r in records], [(RecordTypes.CHAT_MSG, 'alice: hello')])

    async def test_write_failure_does_not_stop_fan_out(self):
        await self.add_user('dave', fail=True)

        delivered = await self.hub.broadcast(create_broadcast_event('alice', 'hello'), exclude={'alice'})

        self.assertEqual(delivered, 2)
        self.assertEqual(self.failures, ['dave'])
        self.assertEqual(len(await self.writers['carol'].records()), 1)
        self.assertNotIn('dave', self.registry)

    async def test_closed_session_is_a_failure(self):
        await self.sessions['bob'].close()

        delivered = await self.hub.broadcast(create_broadcast_event('alice', 'hello'))

        self.assertEqual(delivered, 2)
        self.assertEqual(self.failures, ['bob'])

    async def test_concurrent_writes_do_not_interleave(self):
        events = [create_broadcast_event('alice', f"message {i}") for i in range(10)]
        await asyncio.gather(*(self.hub.broadcast(e, exclude={'alice'}) for e in events))

        records = await self.writers['bob'].records()
        self.assertEqual(sorted(r.text for r in records), sorted(f"alice: message {i}" for i in range(10)))


class TestCommandInterpreter(ChatTestCase):
    """Test cases for CommandInterpreter dispatch."""

    async def test_public_chat(self):
        await self.interpreter.interpret('hello', self.sessions['alice'])

        self.assertEqual(await self.writers['alice'].records(), [])
        self.assertEqual((await self.writers['bob'].records())[0].text, 'alice: hello')

    async def test_private_to_missing_user(self):
        await self.interpreter.interpret('/msg dave hi', self.sessions['alice'])

        records = await self.writers['alice'].records()
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].type, RecordTypes.ERROR)
        self.assertIn("'dave'", records[0].text)
        self.assertEqual(await self.writers['bob'].records(), [])
        self.assertEqual(await self.writers['carol'].records(), [])

    async def test_private_delivery(self):
        await self.interpreter.interpret('/msg alice hi', self.sessions['bob'])

        alice = await self.writers['alice'].records()
        self.assertEqual([(r.type, r.text) for r in alice], [(RecordTypes.PRIVATE_MSG, '[Private from bob]: hi')])
        bob = await self.writers['bob'].records()
        self.assertEqual([(r.type, r.text) for r in bob], [(RecordTypes.SYSTEM_MSG, 'Private message delivered to alice')])
        self.assertEqual(await self.writers['carol'].records(), [])

    async def test_private_to_failing_target(self):
        await self.add_user('dave', fail=True)

        await self.interpreter.interpret('/msg dave hi', self.sessions['alice'])

        records = await self.writers['alice'].records()
        self.assertEqual([r.type for r in records], [RecordTypes.ERROR])
        self.assertEqual(self.failures, ['dave'])

    async def test_malformed_private(self):
        await self.interpreter.interpret('/msg bob', self.sessions['alice'])

        records = await self.writers['alice'].records()
        self.assertEqual([(r.type, r.text) for r in records], [(RecordTypes.ERROR, PRIVATE_USAGE)])
        self.assertEqual(await self.writers['bob'].records(), [])

    async def test_users_reply_to_sender_only(self):
        await self.interpreter.interpret('/users', self.sessions['carol'])

        records = await self.writers['carol'].records()
        self.assertEqual(records[0].type, RecordTypes.USER_LIST)
        self.assertEqual(records[0].items, ['alice', 'bob', 'carol'])
        self.assertEqual(await self.writers['alice'].records(), [])

    async def test_help_reply_to_sender_only(self):
        await self.interpreter.interpret('/help', self.sessions['alice'])

        records = await self.writers['alice'].records()
        self.assertEqual(records[0].type, RecordTypes.HELP)
        self.assertEqual(records[0].items, list(HELP_LINES))
        self.assertEqual(await self.writers['bob'].records(), [])

    async def test_overlong_public_line_rejected(self):
        await self.interpreter.interpret('a' * 65530, self.sessions['alice'])

        records = await self.writers['alice'].records()
        self.assertEqual([(r.type, r.text) for r in records], [(RecordTypes.ERROR, MESSAGE_TOO_LONG)])
        self.assertEqual(await self.writers['bob'].records(), [])
        self.assertEqual(self.failures, [])
        self.assertIn('alice', self.registry)

    async def test_overlong_private_line_rejected(self):
        await self.interpreter.interpret('/msg bob ' + 'a' * 65520, self.sessions['alice'])

        records = await self.writers['alice'].records()
        self.assertEqual([(r.type, r.text) for r in records], [(RecordTypes.ERROR, MESSAGE_TOO_LONG)])
        self.assertEqual(await self.writers['bob'].records(), [])


class TestUserServer(unittest.IsolatedAsyncioTestCase):
    """Test cases for login and disconnect without a network."""

    async def asyncSetUp(self):
        self.registry = SessionRegistry()
        self.notifier = NotificationServer('127.0.0.1', 0)
        self.user_server = UserServer(self.registry, self.notifier)

    def queued_lines(self):
        lines = []
        while not self.notifier.queue.empty():
            lines.append(self.notifier.queue.get_nowait())
        return lines

    async def test_login_and_duplicate(self):
        alice_writer = FakeWriter()
        result = await self.user_server.login('alice', 'secret', alice_writer)
        self.assertTrue(result.accepted)

        impostor = FakeWriter()
        result = await self.user_server.login('alice', 'other', impostor)
        self.assertFalse(result.accepted)
        self.assertEqual(result.reason, 'username taken')

        reader = asyncio.StreamReader()
        reader.feed_data(bytes(impostor.data))
        reader.feed_eof()
        self.assertFalse(await read_bool(reader))
        self.assertEqual(await read_utf(reader), 'username taken')

        self.assertEqual(await self.registry.get_users(), ['alice'])
        self.assertEqual(self.queued_lines(), ['SYSTEM:alice joined'])

    async def test_invalid_username(self):
        for name in ('', 'two words'):
            result = await self.user_server.login(name, '', FakeWriter())
            self.assertFalse(result.accepted)
            self.assertEqual(result.reason, 'invalid username')
        self.assertEqual(len(self.registry), 0)

    async def test_join_announcements(self):
        alice_writer, bob_writer = FakeWriter(), FakeWriter()
        await self.user_server.login('alice', '', alice_writer)
        await self.user_server.login('bob', '', bob_writer)

        alice = await alice_writer.records(skip_login_reply=True)
        self.assertEqual([r.type for r in alice],
                         [RecordTypes.USER_LIST, RecordTypes.SYSTEM_MSG, RecordTypes.USER_LIST])
        self.assertEqual(alice[1].text, 'bob has joined the chat')
        self.assertEqual(alice[2].items, ['alice', 'bob'])

        # The joiner gets the refresh but not its own join notice
        bob = await bob_writer.records(skip_login_reply=True)
        self.assertEqual([(r.type, r.items) for r in bob], [(RecordTypes.USER_LIST, ['alice', 'bob'])])

    async def test_disconnect_announces_once(self):
        alice_writer, bob_writer = FakeWriter(), FakeWriter()
        alice = (await self.user_server.login('alice', '', alice_writer)).session
        await self.user_server.login('bob', '', bob_writer)
        bob_writer.data.clear()
        self.queued_lines()

        await self.user_server.disconnect(alice)
        await self.user_server.disconnect(alice)

        records = await bob_writer.records()
        self.assertEqual([r.type for r in records], [RecordTypes.SYSTEM_MSG, RecordTypes.USER_LIST])
        self.assertEqual(records[0].text, 'alice has left the chat')
        self.assertEqual(records[1].items, ['bob'])
        self.assertEqual(self.queued_lines(), ['SYSTEM:alice left'])
        self.assertTrue(alice_writer.closed)
        self.assertEqual(await self.registry.get_users(), ['bob'])

    async def test_username_must_fit_in_frames(self):
        result = await self.user_server.login('x' * 65514, '', FakeWriter())
        self.assertFalse(result.accepted)
        self.assertEqual(result.reason, 'invalid username')
        self.assertEqual(len(self.registry), 0)

        # Longest name whose welcome line still fits
        result = await self.user_server.login('x' * 65513, '', FakeWriter())
        self.assertTrue(result.accepted)
        self.assertEqual(len(self.registry), 1)

    async def test_session_dropped_during_login_is_not_announced(self):
        alice_writer = FakeWriter()
        await self.user_server.login('alice', '', alice_writer)
        alice_writer.data.clear()
        self.queued_lines()

        user_server, registry = self.user_server, self.registry

        class DroppingWriter(FakeWriter):
            async def drain(self):
                # A failed fan-out write lands while the reply is in flight
                session = await registry.get('bob')
                if session is not None:
                    await user_server.disconnect(session)

        result = await self.user_server.login('bob', '', DroppingWriter())

        self.assertFalse(result.accepted)
        records = await alice_writer.records()
        self.assertEqual([(r.type, r.text) for r in records][0], (RecordTypes.SYSTEM_MSG, 'bob has left the chat'))
        self.assertNotIn('bob has joined the chat', [r.text for r in records])
        self.assertEqual(self.queued_lines(), ['SYSTEM:bob left'])
        self.assertEqual(await self.registry.get_users(), ['alice'])


if __name__ == '__main__':
    unittest.main()
