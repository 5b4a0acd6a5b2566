import logging

from domain.controller import SessionController
from domain.errors import LiveTranslatorError
from ports.control import ControlCommand

logger = logging.getLogger(__name__)


def status_payload(controller: SessionController) -> dict:
    current = controller.current_turn
    return {
        "state": controller.status.value,
        "message": controller.error_message,
        "source_language": controller.source_language,
        "target_language": controller.target_language,
        "current_turn": current.original if current is not None else None,
        "history": [
            {"id": turn.id, "original": turn.original, "translated": turn.translated}
            for turn in controller.history
        ],
    }


async def handle_command(controller: SessionController, cmd: ControlCommand) -> None:
    logger.debug("Control command: %s", cmd.action)
    try:
        if cmd.action == "start":
            started = await controller.start()
            result = "ok" if started else "ignored"
        elif cmd.action == "stop":
            await controller.stop()
            result = "ok"
        elif cmd.action == "status":
            result = "ok"
        elif cmd.action == "languages":
            payload = cmd.payload or {}
            controller.set_languages(
                payload.get("source", controller.source_language),
                payload.get("target", controller.target_language),
            )
            result = "ok"
        else:
            cmd.respond({"status": "error", "action": cmd.action, "error": f"Unknown action: {cmd.action}"})
            return
    except LiveTranslatorError as exc:
        logger.warning("Control command %s rejected: %s", cmd.action, exc)
        cmd.respond({"status": "error", "action": cmd.action, "error": str(exc)})
        return

    cmd.respond({"status": result, "action": cmd.action, **status_payload(controller)})
