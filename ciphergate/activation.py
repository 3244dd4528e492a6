"""Activation state machine: first-run registration and steady-state startup.

Registration (-r) unlocks the encrypted volume, refuses to run twice,
captures the phone number, lets the transport register and provision
keys, then locks the volume again. The operator restarts afterwards.

Steady state reads the persisted number, sets up the transport and starts
the inbound listener.
"""

import logging
from enum import Enum
from typing import Optional

from ciphergate.config import GatewayConfig
from ciphergate.errors import AlreadyRegistered, GatewayError, NotRegistered, StorageFailure, TransportFailure
from ciphergate.listener import InboundListener
from ciphergate.models import is_valid_number
from ciphergate.prompts import Prompter
from ciphergate.registration import RegistrationState
from ciphergate.transport import MessagingTransport, TransportCallbacks, TransportConfig
from ciphergate.volume import VolumeManager

log = logging.getLogger(__name__)


class ActivationState(str, Enum):
    IDLE = "idle"
    VOLUME_UNLOCKED = "volume_unlocked"
    REGISTRATION_CHECKED = "registration_checked"
    AWAITING_NUMBER = "awaiting_number"
    AWAITING_VERIFICATION = "awaiting_verification"
    READY = "ready"
    LISTENER_RUNNING = "listener_running"
    FATAL = "fatal"


class Activator:
    def __init__(
        self,
        config: GatewayConfig,
        registration: RegistrationState,
        transport: MessagingTransport,
        prompter: Optional[Prompter] = None,
        volume: Optional[VolumeManager] = None,
    ):
        self.config = config
        self.registration = registration
        self.transport = transport
        self.prompter = prompter
        self.volume = volume
        self.state = ActivationState.IDLE
        self.transitions: list[ActivationState] = [ActivationState.IDLE]
        self.number: Optional[str] = None

    def _enter(self, state: ActivationState):
        log.info(f"[ACTIVATION] {self.state.value} -> {state.value}")
        self.state = state
        self.transitions.append(state)

    def _fatal(self, err: GatewayError) -> GatewayError:
        if self.state != ActivationState.FATAL:
            self._enter(ActivationState.FATAL)
            log.error(f"[ACTIVATION] {err.message}")
        return err

    def _lock_volume(self):
        if self.config.test_mode or self.volume is None:
            return
        try:
            self.volume.lock()
        except (GatewayError, OSError) as e:
            log.warning(f"Failed to lock volume: {e}")

    def _require_prompter(self) -> Prompter:
        if self.prompter is None:
            raise StorageFailure("interactive prompter required for registration")
        return self.prompter

    def _unlock_volume(self):
        prompter = self._require_prompter()
        volume = prompter.prompt_line("\nPlease enter encrypted volume name for key storage: ").strip()
        dispose = prompter.prompt_line(
            "\nIf you would like to have the password disposed of after use enter YES all\nuppercase: "
        ).strip() == "YES"

        if dispose:
            log.warning("Password will be destroyed after its use (quit now if this is undesired)")

        if not self.config.test_mode:
            if self.volume is None:
                raise self._fatal(StorageFailure("no volume manager configured"))
            password = prompter.prompt_password("Please enter volume password (will not echo): ")
            try:
                self.volume.unlock(volume, password, dispose=dispose)
            except StorageFailure as e:
                self._lock_volume()
                raise self._fatal(e)
            except OSError as e:
                self._lock_volume()
                raise self._fatal(StorageFailure(f"failed to unlock {volume}: {e}")) from e

        self._enter(ActivationState.VOLUME_UNLOCKED)

    def _capture_number(self) -> str:
        prompter = self._require_prompter()
        while True:
            number = prompter.prompt_line("\nPlease enter the mobile number to be used for registration: ")
            if is_valid_number(number):
                return number
            log.warning(f"Invalid number {number!r}: expected + or 00 followed by digits")

    def _verification_code(self) -> str:
        self._enter(ActivationState.AWAITING_VERIFICATION)
        return self._require_prompter().prompt_verification_code()

    def _registration_done(self):
        self.registration.mark_provisioned()
        log.info(f"Registration complete for {self.registration.registered_number}")

    def _callbacks(self, number: str) -> TransportCallbacks:
        return TransportCallbacks(
            get_config=lambda: TransportConfig(
                number=number,
                storage_dir=self.config.storage_path,
                log_level=self.config.log_level,
            ),
            get_verification_code=self._verification_code,
            # Storage is already protected by the encrypted volume
            get_storage_password=lambda: "",
            registration_done=self._registration_done,
        )

    async def _setup_transport(self, number: str):
        try:
            await self.transport.setup(self._callbacks(number))
        except Exception as e:
            raise self._fatal(TransportFailure(f"failed to enable {self.transport.name} transport: {e}")) from e
        self.number = number
        self._enter(ActivationState.READY)

    async def register(self) -> str:
        """Run one-shot registration and return the registered number.

        The volume is locked again on success and on any failure after it
        was unlocked.
        """
        self._unlock_volume()
        try:
            self.registration.reload()
            self._enter(ActivationState.REGISTRATION_CHECKED)

            if not self.registration.needs_registration():
                raise AlreadyRegistered(self.registration.registered_number or "unknown", self.config.storage_path)

            self._enter(ActivationState.AWAITING_NUMBER)
            number = self._capture_number()
            self.registration.save_number(number)

            await self._setup_transport(number)
            # Daemon may already hold the account from an earlier attempt
            if not self.registration.provisioned:
                self.registration.mark_provisioned()
        except GatewayError as e:
            self._lock_volume()
            raise self._fatal(e)
        except BaseException:
            # Interrupted at a prompt, or an unexpected error
            self._lock_volume()
            self._enter(ActivationState.FATAL)
            raise

        log.info("Registration successful, locking volume and shutting down. Please restart to apply registration.")
        self._lock_volume()
        return number

    async def activate(self) -> str:
        """Steady-state startup. Returns the registered number."""
        try:
            self.config.storage_path.mkdir(parents=True, exist_ok=True, mode=0o700)
            self.registration.reload()
        except OSError as e:
            raise self._fatal(StorageFailure(f"failed to prepare storage: {e}")) from e
        except StorageFailure as e:
            raise self._fatal(e)

        self._enter(ActivationState.REGISTRATION_CHECKED)

        number = self.registration.registered_number
        if not number:
            raise self._fatal(NotRegistered())

        await self._setup_transport(number)
        return number

    def start_listener(self, listener: InboundListener):
        if self.state != ActivationState.READY:
            raise GatewayError(f"cannot start listener in state {self.state.value}")
        log.info(f"Enabling {self.transport.name} message listener for {self.number}")
        listener.start()
        self._enter(ActivationState.LISTENER_RUNNING)
