"""Live preview process management.

A PreviewManager owns at most one background preview server (e.g.
`npm run dev`) at a time. Its lifecycle is a small state machine built on
the transitions library:

    stopped --reserve--> starting --spawned--> running --halt/exited--> stopped
                         starting --fail-----> stopped

start() reserves under the manager's lock, so a second start() fails fast
while the first is still processing content or spawning. The preview
process runs in its own session so stop() can signal the whole process
group, including the children build tools like to fork.
"""

import logging
import os
import shlex
import signal
import subprocess
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from transitions import Machine

from sitepub.deploy.content import ContentProcessor, NullContentProcessor
from sitepub.lib.constants import STAGE_PREVIEW
from sitepub.lib.errors import SitepubError
from sitepub.lib.types import PreviewResult, PreviewStatus

logger = logging.getLogger(__name__)

# Child process output goes here, one record per line
process_logger = logging.getLogger("sitepub.preview")

STATES = ["stopped", "starting", "running"]

TRANSITIONS = [
    {"trigger": "reserve", "source": "stopped", "dest": "starting"},
    {"trigger": "spawned", "source": "starting", "dest": "running"},
    {"trigger": "fail", "source": "starting", "dest": "stopped"},
    {"trigger": "halt", "source": "running", "dest": "stopped"},
    {"trigger": "exited", "source": "running", "dest": "stopped"},
]


class PreviewFSM:
    """Preview lifecycle state. Callers must hold the manager's lock."""

    def __init__(self):
        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="stopped",
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        logger.info(
            f"[preview] {event.transition.source} -> {event.transition.dest} ({event.event.name})"
        )

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)


@dataclass
class PreviewSession:
    """The single live preview."""
    process: subprocess.Popen
    port: int
    url: str
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def pid(self) -> int:
        return self.process.pid


class PreviewManager:
    """Start, stop and report on the preview server."""

    def __init__(
        self,
        site_dir: Path,
        command: str,
        port: int,
        url: str,
        content_processor: ContentProcessor | None = None,
    ):
        self.site_dir = Path(site_dir)
        self.argv = shlex.split(command.replace("{port}", str(port)))
        self.port = port
        self.url = url
        self.content_processor = content_processor or NullContentProcessor()
        self.fsm = PreviewFSM()
        self._session: PreviewSession | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self.fsm.state

    def start(self) -> PreviewResult:
        """Process content and spawn the preview server.

        Returns as soon as the process is spawned; the server may still be
        booting. Callers poll status().
        """
        with self._lock:
            if not self.fsm.can("reserve"):
                logger.warning(f"Preview start rejected, state is {self.fsm.state}")
                return PreviewResult.failed(
                    f"Preview is already running at {self.url}", stage=STAGE_PREVIEW
                )
            self.fsm.reserve()

        try:
            self.content_processor.process()
            process = self._spawn()
        except SitepubError as e:
            with self._lock:
                self.fsm.fail()
            return PreviewResult.failed(
                f"Preview failed at {e.stage or STAGE_PREVIEW} stage: {e}",
                stage=e.stage or STAGE_PREVIEW,
            )
        except Exception as e:
            logger.exception("Preview start failed")
            with self._lock:
                self.fsm.fail()
            return PreviewResult.failed(f"Preview failed to start: {e}", stage=STAGE_PREVIEW)

        session = PreviewSession(process=process, port=self.port, url=self.url)
        with self._lock:
            self._session = session
            self.fsm.spawned()
        self._watch(session)

        logger.info(f"Preview started (pid {session.pid}) at {self.url}")
        return PreviewResult.ok(f"Preview started at {self.url}", url=self.url)

    def stop(self) -> PreviewResult:
        """Signal the preview's process group and forget the session.

        The signal is delivered before returning; the processes may still be
        shutting down.
        """
        with self._lock:
            session = self._session
            if session is None or not self.fsm.can("halt"):
                return PreviewResult.failed("Preview is not running", stage=STAGE_PREVIEW)
            self._terminate(session)
            self._session = None
            self.fsm.halt()

        return PreviewResult.ok("Preview stopped")

    def status(self) -> PreviewStatus:
        """Pure read of in-memory state."""
        session = self._session
        if session is None or self.fsm.state != "running":
            return PreviewStatus(is_running=False)
        return PreviewStatus(is_running=True, url=session.url, port=session.port)

    def shutdown(self) -> None:
        """Stop the preview if one is running (service exit)."""
        if self._session is not None:
            self.stop()

    def _spawn(self) -> subprocess.Popen:
        env = dict(os.environ)
        env["PORT"] = str(self.port)
        logger.info(f"Spawning preview: {shlex.join(self.argv)} in {self.site_dir}")
        return subprocess.Popen(
            self.argv,
            cwd=str(self.site_dir),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            bufsize=1,
            env=env,
            # Own process group, so killpg reaches forked children
            start_new_session=True,
        )

    def _terminate(self, session: PreviewSession) -> None:
        try:
            os.killpg(os.getpgid(session.pid), signal.SIGTERM)
            logger.info(f"Sent SIGTERM to preview process group {session.pid}")
        except ProcessLookupError:
            logger.info(f"Preview process {session.pid} had already exited")

    def _watch(self, session: PreviewSession) -> None:
        thread = threading.Thread(
            target=self._forward_output,
            args=(session,),
            name=f"preview-{session.pid}",
            daemon=True,
        )
        thread.start()

    def _forward_output(self, session: PreviewSession) -> None:
        """Log child output until it exits, then record the exit."""
        stream = session.process.stdout
        if stream is not None:
            for line in stream:
                process_logger.info(line.rstrip())
            stream.close()
        code = session.process.wait()

        with self._lock:
            if self._session is session:
                logger.warning(f"Preview process {session.pid} exited on its own (code {code})")
                self._session = None
                self.fsm.exited()
            else:
                logger.debug(f"Preview process {session.pid} exited (code {code})")
