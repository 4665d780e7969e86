from .user import User
from .room import Room, RoomName
from .membership import RoomMember, RoomJoined, RoomCreated
from .message import RoomMessage, MessageType, DirectChat, DirectMessage
from .friend import FriendRequest, Friendship
from .scheduled import ScheduledMessage, ScheduleScope
