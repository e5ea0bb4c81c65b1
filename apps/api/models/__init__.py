"""Models package."""

from .channel import Channel
from .game import Game
from .clip import Clip
from .blocklist_entry import BlocklistEntry
from .command_request import CommandRequest
from .now_playing import NowPlaying
from .category_filter import CategoryFilter
from .clip_vote import ClipVote
from .vote_ledger import VoteLedger
from .clip_play import ClipPlay
