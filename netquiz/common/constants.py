"""
Shared constants for the NetQuiz LAN platform.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 5002  # Single TCP port for every feature
DEFAULT_NOTIFICATION_PORT = 5003  # UDP port for presence broadcasts
BROADCAST_ADDRESS = '255.255.255.255'

# Buffer Sizes
CHUNK_SIZE = 8192
MAX_FRAME_LENGTH = 0xFFFF  # 2-byte length prefix
NOTIFICATION_BUFFER_SIZE = 1024

# Storage
FILES_DIR = 'server_files'
QUIZZES_FILE = 'quizzes.json'

# Logging
LOG_DIR = 'logs'
CHAT_LOG_FILE = 'chat_history.log'
TRANSFER_LOG_FILE = 'file_transfers.log'


# Leading tag on every new TCP connection
class RequestTags:
    QUIZ = 'QUIZ'
    FILE = 'FILE'
    CHAT = 'CHAT'
    USER = 'USER'

    # Both select the persistent chat/presence session
    SESSION = (CHAT, USER)


# Chat/user sub-protocol
class UserCommands:
    LOGIN = 'LOGIN'
    LOGOUT = 'LOGOUT'
    GET_USERS = 'GET_USERS'


# In-band chat commands
class ChatCommands:
    PRIVATE = '/msg'
    USERS = '/users'
    HELP = '/help'


# Server to client record tags
class RecordTypes:
    USER_LIST = 'USER_LIST'
    CHAT_MSG = 'CHAT_MSG'
    SYSTEM_MSG = 'SYSTEM_MSG'
    PRIVATE_MSG = 'PRIVATE_MSG'
    HELP = 'HELP'
    ERROR = 'ERROR'

    # Records whose body is a single string frame
    TEXT = (CHAT_MSG, SYSTEM_MSG, PRIVATE_MSG, ERROR)


# Quiz sub-protocol
class QuizCommands:
    LIST_QUIZZES = 'LIST_QUIZZES'
    GET_QUIZ = 'GET_QUIZ'
    SUBMIT_ANSWERS = 'SUBMIT_ANSWERS'


# File sub-protocol
class FileCommands:
    UPLOAD = 'UPLOAD'
    DOWNLOAD = 'DOWNLOAD'
    LIST = 'LIST'


# Status strings
SUCCESS = 'SUCCESS'
ERROR = 'ERROR'

# Login replies
REASON_USERNAME_TAKEN = 'username taken'
REASON_INVALID_USERNAME = 'invalid username'

# Presence notification prefixes
NOTIFY_SYSTEM = 'SYSTEM:'
NOTIFY_NEW_FILE = 'NEW_FILE:'
NOTIFY_NEW_QUIZ = 'NEW_QUIZ:'

HELP_LINES = (
    'Available commands:',
    '  /msg <username> <message>  - Send a private message',
    '  /users                     - List connected users',
    '  /help                      - Show this help',
    '  LOGOUT                     - Leave the chat',
    '  <any text>                 - Send a public message',
)
