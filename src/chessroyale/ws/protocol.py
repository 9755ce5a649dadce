"""WebSocket protocol message types."""

from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chessroyale.game.board import Position


class ServerMessageType(Enum):
    """Types of messages sent from server to client."""

    CONNECTED = "connected"
    ASSIGNED = "assigned"
    GAME_STATE = "game_state"
    UPDATE = "update"
    MOVE_REJECTED = "move_rejected"
    GAME_EVENT = "game_event"
    PLAYER_RESPAWN = "player_respawn"
    PLAYER_DEFEATED = "player_defeated"
    LOOT_SPAWN = "loot_spawn"
    LOOT_COLLECT = "loot_collect"
    LEGAL_MOVES = "legal_moves"
    PONG = "pong"
    ERROR = "error"


class ClientMessageType(Enum):
    """Types of messages sent from client to server."""

    REGISTER = "register"
    CONFIRM_REGISTRATION = "confirm_registration"
    MOVE = "move"
    ABILITY = "ability"
    VINE_TRAP = "vine_trap"
    LEGAL_MOVES = "legal_moves"
    PING = "ping"


class PositionModel(BaseModel):
    """A board square on the wire."""

    x: int
    z: int

    def to_position(self) -> Position:
        return Position(self.x, self.z)

    @classmethod
    def from_position(cls, position: Position) -> "PositionModel":
        return cls(x=position.x, z=position.z)


# Server -> Client Messages


class ConnectedMessage(BaseModel):
    """Sent when a client opens a connection."""

    type: str = "connected"
    id: str  # Connection ID, used as the piece ID
    tick_interval: float  # Server tick interval in seconds


class AssignedMessage(BaseModel):
    """Placement handed to a registering player."""

    type: str = "assigned"
    id: str
    piece_type: str
    team: str
    position: PositionModel
    hp: int


class GameStateMessage(BaseModel):
    """Full match state, sent to a player once registration is confirmed."""

    type: str = "game_state"
    players: dict[str, dict[str, Any]]
    events: list[dict[str, Any]]
    settings: dict[str, Any]
    time: float
    late_game: bool = False
    loot: list[dict[str, Any]] = []
    entities: list[dict[str, Any]] = []


class UpdateMessage(BaseModel):
    """Snapshot of all pieces, broadcast after every state change."""

    type: str = "update"
    players: dict[str, dict[str, Any]]
    loot: list[dict[str, Any]] = []
    entities: list[dict[str, Any]] = []
    time: float = 0.0


class MoveRejectedMessage(BaseModel):
    """Sent to the mover only, with the square to snap back to."""

    type: str = "move_rejected"
    id: str
    correct_position: PositionModel
    reason: str | None = None


class GameEventMessage(BaseModel):
    """Sent when a scheduled event fires."""

    type: str = "game_event"
    event_type: str
    time: float


class PlayerRespawnMessage(BaseModel):
    """Sent when a defeated piece comes back."""

    type: str = "player_respawn"
    id: str
    position: PositionModel
    hp: int


class PlayerDefeatedMessage(BaseModel):
    """Sent when a piece is defeated."""

    type: str = "player_defeated"
    id: str
    attacker: str
    status: str


class LootSpawnMessage(BaseModel):
    """Sent when loot appears on the board."""

    type: str = "loot_spawn"
    id: str
    loot_type: str
    position: PositionModel


class LootCollectMessage(BaseModel):
    """Sent when a piece picks up loot."""

    type: str = "loot_collect"
    id: str
    loot_id: str
    loot_type: str


class LegalMovesResponse(BaseModel):
    """Squares the requesting piece may move to."""

    type: str = "legal_moves"
    id: str
    targets: list[PositionModel]


class PongMessage(BaseModel):
    """Response to ping."""

    type: str = "pong"


class ErrorMessage(BaseModel):
    """Error message."""

    type: str = "error"
    message: str


# Client -> Server Messages


class RegisterMessage(BaseModel):
    """Request a placement. The piece type is random unless requested."""

    type: str = "register"
    piece_type: str | None = None


class ConfirmRegistrationMessage(BaseModel):
    """Finalize a placement and join the match."""

    type: str = "confirm_registration"
    piece_type: str | None = None
    team: str | None = None
    position: PositionModel | None = None
    hp: int | None = None


class MoveMessage(BaseModel):
    """Request to move the sender's piece."""

    type: str = "move"
    position: PositionModel


class AbilityMessage(BaseModel):
    """Request to use the sender's ability on a square."""

    type: str = "ability"
    target: PositionModel
    damage: int | None = None


class VineTrapMessage(BaseModel):
    """Request to spring a held vine trap on a square."""

    type: str = "vine_trap"
    target: PositionModel


class LegalMovesMessage(BaseModel):
    """Ask for the squares the sender's piece may move to."""

    type: str = "legal_moves"


class PingMessage(BaseModel):
    """Keepalive ping."""

    type: str = "ping"


ClientMessage = (
    RegisterMessage
    | ConfirmRegistrationMessage
    | MoveMessage
    | AbilityMessage
    | VineTrapMessage
    | LegalMovesMessage
    | PingMessage
)

_CLIENT_MESSAGES: dict[str, type[BaseModel]] = {
    ClientMessageType.REGISTER.value: RegisterMessage,
    ClientMessageType.CONFIRM_REGISTRATION.value: ConfirmRegistrationMessage,
    ClientMessageType.MOVE.value: MoveMessage,
    ClientMessageType.ABILITY.value: AbilityMessage,
    ClientMessageType.VINE_TRAP.value: VineTrapMessage,
    ClientMessageType.LEGAL_MOVES.value: LegalMovesMessage,
    ClientMessageType.PING.value: PingMessage,
}


def parse_client_message(data: dict[str, Any]) -> ClientMessage | None:
    """Parse a client message from JSON data.

    The sender is identified by its connection, so any "id" field the client
    includes is ignored.

    Args:
        data: Parsed JSON data

    Returns:
        Parsed message or None if invalid
    """
    if not isinstance(data, dict):
        return None

    msg_type = data.get("type")
    if not isinstance(msg_type, str):
        return None

    model = _CLIENT_MESSAGES.get(msg_type)
    if model is None:
        return None

    payload = {k: v for k, v in data.items() if k != "id"}
    try:
        return model.model_validate(payload)
    except PydanticValidationError:
        return None
