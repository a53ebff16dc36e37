from __future__ import annotations

import asyncio
import logging

from src.components.store import ComponentStore
from src.editing.orchestrator import EditOrchestrator, EditStreamSource, TurnResult
from src.editing.types import CompileStatus, EditSession
from src.preview.document import DEFAULT_COMPONENT_NAME
from src.preview.harness import HarnessResult
from src.preview.sandbox import PreviewSandbox, RuntimeFactory
from src.preview.verify import CompileVerifier, VerifyOutcome, VerifyStatus
from src.runtime_autoheal import AutoFixConfig

logger = logging.getLogger(__name__)

_COMPILE_STATUS = {
    VerifyStatus.IDLE: CompileStatus.IDLE,
    VerifyStatus.PROBING: CompileStatus.COMPILING,
    VerifyStatus.SUCCEEDED: CompileStatus.SUCCESS,
    VerifyStatus.FAILED: CompileStatus.ERROR,
    VerifyStatus.TIMED_OUT: CompileStatus.ERROR,
}


class ComponentPreviewSession:
    """Everything attached to one open component.

    Wires the visible preview, the compile verifier and the edit
    orchestrator to one `EditSession`, and persists through `store`.
    """

    def __init__(
        self,
        component_id: str,
        *,
        store: ComponentStore,
        runtime_factory: RuntimeFactory,
        edit_source: EditStreamSource,
        scene_id: str | None = None,
        props: dict[str, str] | None = None,
        component_name: str = DEFAULT_COMPONENT_NAME,
        autofix: AutoFixConfig | None = None,
    ) -> None:
        self._store = store
        self._props = props
        self.session = EditSession(component_id=component_id, live_code="", scene_id=scene_id)
        self.preview = PreviewSandbox(runtime_factory, component_name=component_name)
        self.verifier = CompileVerifier(
            runtime_factory,
            on_verified=self._on_verified,
            on_status=self._on_verify_status,
            on_warning=self._on_verify_warning,
            component_name=component_name,
        )
        self.orchestrator = EditOrchestrator(
            self.session,
            source=edit_source,
            rebuild=self.rebuild,
            save=self._persist,
            invalidate=self.preview.invalidate,
            autofix=autofix,
        )
        self._unsubscribe = self.preview.listener.subscribe(self.orchestrator.on_preview_event)

    async def open(self) -> EditSession:
        s = self.session
        code = await asyncio.to_thread(self._store.get, s.component_id)
        await self.verifier.cancel()
        s.live_code = code or ""
        s.persisted_code = s.live_code
        s.dirty = False
        s.preview_error = None
        s.auto_mocked = []
        s.compile_status = CompileStatus.IDLE
        logger.info("Opened component %s (%d bytes)", s.component_id, len(s.live_code))
        await self.rebuild()
        return s

    def set_live_code(self, code: str) -> None:
        self.session.live_code = code
        self.session.dirty = code != self.session.persisted_code

    async def rebuild(self, code: str | None = None) -> HarnessResult | None:
        if code is not None:
            self.set_live_code(code)
        return await self.preview.rebuild(self.session.live_code, props=self._props)

    async def recompile(self) -> VerifyOutcome:
        return await self.verifier.verify(self.session.live_code, props=self._props)

    async def submit(self, instruction: str) -> TurnResult | None:
        await self.verifier.cancel()
        return await self.orchestrator.submit(instruction)

    async def fix_with_ai(self) -> TurnResult | None:
        await self.verifier.cancel()
        return await self.orchestrator.fix_with_ai()

    async def _persist(self, code: str) -> None:
        await asyncio.to_thread(self._store.set, self.session.component_id, code)

    async def save(self) -> None:
        code = self.session.live_code
        await self._persist(code)
        self.session.persisted_code = code
        self.session.dirty = False

    async def _on_verified(self, code: str) -> None:
        await self.rebuild(code)

    def _on_verify_status(self, status: VerifyStatus, error: str | None) -> None:
        self.session.compile_status = _COMPILE_STATUS[status]
        if status in (VerifyStatus.FAILED, VerifyStatus.TIMED_OUT):
            self.session.preview_error = error
        elif status is VerifyStatus.SUCCEEDED:
            self.session.preview_error = None

    def _on_verify_warning(self, names: list[str]) -> None:
        self.session.auto_mocked = list(names)

    async def close(self) -> None:
        self._unsubscribe()
        await self.orchestrator.close()
        await self.verifier.close()
        await self.preview.close()
