"""Jinja2 templates for the generated IPC glue.

Each strategy of the transform matrix owns an async and a sync template.
Registration templates produce a block appended to the module; stub
templates produce the replacement for a function's span and receive the
already spelled ``head`` (``export async function name(...args)``,
``async (...args) =>`` and so on).
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Dict

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError

from ..errors import TemplateRenderError

_REGISTER_HANDLER_ASYNC = """\
try {
  ipcMain.handle({{ channel | js_string }}, async (_event, ...args) => {
    try {
      return await {{ name }}(...args);
    } catch (err) {
      console.error("Error in IPC handler for channel " + {{ channel | js_string }} + ":", err);
      return { __ipcError: err instanceof Error ? err.message : String(err) };
    }
  });
} catch (err) {
  console.error("Failed to register ipcMain.handle for channel " + {{ channel | js_string }} + ":", err);
}
"""

_REGISTER_HANDLER_SYNC = """\
try {
  ipcMain.on({{ channel | js_string }}, (event, ...args) => {
    try {
      event.returnValue = {{ name }}(...args);
    } catch (err) {
      console.error("Error in IPC listener for channel " + {{ channel | js_string }} + ":", err);
      event.returnValue = { error: err instanceof Error ? err.message : String(err) };
    }
  });
} catch (err) {
  console.error("Failed to register ipcMain.on for channel " + {{ channel | js_string }} + ":", err);
}
"""

_REGISTER_LISTENER_ASYNC = """\
try {
  ipcRenderer.on({{ channel | js_string }}, async (event, ...args) => {
    try {
      const result = await {{ name }}(...args);
      event.sender.send({{ reply_channel | js_string }}, result);
    } catch (err) {
      console.error("Error in renderer IPC function " + {{ channel | js_string }} + ":", err);
      event.sender.send({{ reply_channel | js_string }}, { __ipcError: err instanceof Error ? err.message : String(err) });
    }
  });
} catch (err) {
  console.error("Failed to register ipcRenderer.on for channel " + {{ channel | js_string }} + ":", err);
}
"""

_REGISTER_LISTENER_SYNC = """\
try {
  ipcRenderer.on({{ channel | js_string }}, (event, ...args) => {
    try {
      const result = {{ name }}(...args);
      event.sender.send({{ reply_channel | js_string }}, result);
    } catch (err) {
      console.error("Error in renderer IPC function " + {{ channel | js_string }} + ":", err);
      event.sender.send({{ reply_channel | js_string }}, { __ipcError: err instanceof Error ? err.message : String(err) });
    }
  });
} catch (err) {
  console.error("Failed to register ipcRenderer.on for channel " + {{ channel | js_string }} + ":", err);
}
"""

_BROADCAST_ASYNC = """\
{{ head }} {
  const targets = webContents.getAllWebContents();
  return new Promise((resolve, reject) => {
    let settled = false;
{% if timeout_ms %}
    if (targets.length === 0) {
      settled = true;
      reject(new Error("No renderer is open to answer IPC channel " + {{ channel | js_string }}));
      return;
    }
    const timer = setTimeout(() => {
      if (!settled) {
        settled = true;
        reject(new Error("IPC broadcast on channel " + {{ channel | js_string }} + " timed out after {{ timeout_ms }} ms"));
      }
    }, {{ timeout_ms }});
{% endif %}
    for (const target of targets) {
      // First reply from any renderer wins; later replies are ignored.
      target.ipc.once({{ reply_channel | js_string }}, (_event, resultOrError) => {
        if (settled) {
          return;
        }
        settled = true;
{% if timeout_ms %}
        clearTimeout(timer);
{% endif %}
        if (resultOrError && typeof resultOrError === "object" && "__ipcError" in resultOrError) {
          reject(new Error(resultOrError.__ipcError));
        } else {
          resolve(resultOrError);
        }
      });
      target.send({{ channel | js_string }}, ...args);
    }
  });
}
"""

_BROADCAST_SYNC = """\
{{ head }} {
  for (const target of webContents.getAllWebContents()) {
    target.send({{ channel | js_string }}, ...args);
  }
}
"""

_INVOKE_ASYNC = """\
{{ head }} {
  let result;
  try {
    result = await ipcRenderer.invoke({{ channel | js_string }}, ...args);
  } catch (err) {
    console.error("IPC invoke error on channel " + {{ channel | js_string }} + ":", err);
    throw err;
  }
  if (result && typeof result === "object" && "__ipcError" in result) {
    throw new Error(result.__ipcError);
  }
  return result;
}
"""

_INVOKE_SYNC = """\
{{ head }} {
  try {
    return ipcRenderer.sendSync({{ channel | js_string }}, ...args);
  } catch (err) {
    console.error("IPC sendSync error on channel " + {{ channel | js_string }} + ":", err);
    return { error: err instanceof Error ? err.message : String(err) };
  }
}
"""

TEMPLATES: Dict[str, str] = {
    "register_handler_async.js.j2": _REGISTER_HANDLER_ASYNC,
    "register_handler_sync.js.j2": _REGISTER_HANDLER_SYNC,
    "register_listener_async.js.j2": _REGISTER_LISTENER_ASYNC,
    "register_listener_sync.js.j2": _REGISTER_LISTENER_SYNC,
    "broadcast_async.js.j2": _BROADCAST_ASYNC,
    "broadcast_sync.js.j2": _BROADCAST_SYNC,
    "invoke_async.js.j2": _INVOKE_ASYNC,
    "invoke_sync.js.j2": _INVOKE_SYNC,
}


def _filter_js_string(value: Any) -> str:
    """Quote ``value`` as a JavaScript string literal."""
    return json.dumps(str(value), ensure_ascii=False)


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    env = Environment(
        loader=DictLoader(TEMPLATES),
        autoescape=False,  # We're generating code, not HTML
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )
    env.filters["js_string"] = _filter_js_string
    return env


def render_template(template_name: str, /, **variables: Any) -> str:
    """Render ``template_name``; failures surface as :class:`TemplateRenderError`.

    ``template_name`` is positional-only so templates may take a ``name`` variable.
    """
    try:
        return get_environment().get_template(template_name).render(**variables)
    except TemplateError as exc:
        raise TemplateRenderError(f"Template {template_name} failed to render: {exc}") from exc


__all__ = ["TEMPLATES", "get_environment", "render_template"]
