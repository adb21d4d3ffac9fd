import json
import logging
from enum import Enum
from typing import Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from voice_relay.core.ledger import CallLedger
from voice_relay.core.registry import IdentityRegistry
from voice_relay.core.session import ChannelSession
from voice_relay.schemas.signaling import (
    INVALID_FORMAT,
    TARGET_NOT_CONNECTED,
    MessageType,
    RelayError,
    SignalingMessage,
)
from voice_relay.utils.logger import safe_repr

logger = logging.getLogger(__name__)


class RoutingOutcome(str, Enum):
    invalid_format = "invalid-format"
    registered = "registered"
    no_target = "no-target"
    forwarded = "forwarded"
    target_unreachable = "target-unreachable"


class MessageRouter:
    """Validates inbound frames and forwards them by identity."""

    def __init__(self, registry: IdentityRegistry, ledger: CallLedger):
        self.registry = registry
        self.ledger = ledger

    def parse(self, raw: Union[str, bytes]) -> Optional[SignalingMessage]:
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                return None
        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError):
            return None
        try:
            return SignalingMessage.model_validate(payload)
        except ValidationError:
            return None

    def route(self, raw: Union[str, bytes], sender: ChannelSession) -> RoutingOutcome:
        message = self.parse(raw)
        if message is None:
            logger.warning(f"Invalid frame from {safe_repr(sender.identity)}: {safe_repr(raw)}")
            self._reply(sender, RelayError(message=INVALID_FORMAT))
            return RoutingOutcome.invalid_format

        if message.type == MessageType.register:
            sender.bind(message.from_user)
            return RoutingOutcome.registered

        if not sender.is_bound or not self.registry.is_bound(message.from_user):
            sender.bind(message.from_user)

        target_id = message.to_user
        if not target_id:
            return RoutingOutcome.no_target

        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        target = self.registry.resolve(target_id)
        if target is None or not target.is_open or not target.send(text):
            logger.warning(
                f"Could not relay {message.type.value} from {safe_repr(message.from_user)} "
                f"to {safe_repr(target_id)}: user not connected"
            )
            self._reply(sender, RelayError(message=TARGET_NOT_CONNECTED, target_user=target_id))
            return RoutingOutcome.target_unreachable

        logger.debug(f"Relayed {message.type.value} {safe_repr(message.from_user)} -> {safe_repr(target_id)}")
        self._record(message)
        return RoutingOutcome.forwarded

    def _record(self, message: SignalingMessage) -> None:
        # The frame is already delivered; a ledger fault must not undo that
        try:
            if message.type == MessageType.call_request:
                self.ledger.create_record(message.from_user, message.to_user)
            elif message.type == MessageType.call_end:
                self.ledger.mark_status(message.from_user, message.to_user, "completed")
        except SQLAlchemyError as e:
            logger.error(f"Failed to record {message.type.value} in call ledger: {e}")

    def _reply(self, sender: ChannelSession, error: RelayError) -> None:
        if not sender.channel.send(error.to_wire()):
            logger.debug(f"Could not deliver error to {safe_repr(sender.identity)}")
