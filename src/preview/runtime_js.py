"""In-page half of the execution harness.

The document exposes `window.__sandbox`, a set of small synchronous
primitives (transpile, evaluate, define, resolve, mount, setFrame). The
Python harness drives them one call at a time; when nothing drives the
page (a plain iframe) `autorun()` performs the same sequence in-page.

Events leave the page through `window.__previewBridge` when a driver has
exposed it, and through `parent.postMessage` otherwise.
"""

from __future__ import annotations

# Installed first so that even a failure inside the stubs is reported.
FAULT_HANDLER_JS = r"""
(function() {
  function esc(s) { return String(s).replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;'); }
  function report(text) {
    var st = window.__sandboxState || {};
    if (st.mounting) return;
    var el = document.getElementById('root');
    if (el) el.innerHTML = '<div class="error-box">' + esc(text) + '</div>';
    var msg = { type: 'preview-error', error: text, generation: window.__previewGeneration || 0 };
    try { if (typeof window.__previewBridge === 'function') window.__previewBridge(msg); } catch (x) {}
    try { if (window.parent && window.parent !== window) window.parent.postMessage(msg, '*'); } catch (x) {}
  }
  window.onerror = function(msg, src, line, col, err) {
    report('Error: ' + String(msg) + '\nLine: ' + line + (err && err.stack ? '\n\n' + err.stack : ''));
    return true;
  };
  window.addEventListener('unhandledrejection', function(e) {
    report('Unhandled promise rejection:\n' + String(e && e.reason));
  });
})();
"""

SANDBOX_RUNTIME_JS = r"""
window.__sandboxState = { mounting: false, caught: false, error: null };
window.__sandbox = (function() {
  var st = window.__sandboxState;
  var rootEl = document.getElementById('root');
  var compiled = null;
  var component = null;
  var frameListeners = [];
  var clockId = null;

  function describe(e) { return e && e.message ? e.message : String(e); }
  function esc(s) { return String(s).replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;'); }

  function emit(type, extra) {
    var msg = Object.assign({ type: type, generation: window.__previewGeneration || 0 }, extra || {});
    try { if (typeof window.__previewBridge === 'function') window.__previewBridge(msg); } catch (x) {}
    try { if (window.parent && window.parent !== window) window.parent.postMessage(msg, '*'); } catch (x) {}
    return msg;
  }

  function showError(text) {
    if (rootEl) rootEl.innerHTML = '<div class="error-box">' + esc(text) + '</div>';
  }

  function source() {
    var el = document.getElementById('__src');
    if (!el) return null;
    // Undo the script-close escaping applied when the document was built.
    return (el.textContent || '').replace(/<\\\/(script)/gi, '</$1').replace(/<\\!--/g, '<!--');
  }

  function transpile() {
    var code = source();
    if (code === null) return { ok: false, message: 'Source element not found' };
    try {
      compiled = Babel.transform(code, {
        presets: ['react', ['typescript', { isTSX: true, allExtensions: true }]],
        filename: 'component.tsx'
      }).code;
      return { ok: true };
    } catch (e) {
      compiled = null;
      return { ok: false, message: describe(e) };
    }
  }

  // Each attempt runs in a fresh function scope so top-level const/let/class
  // can be declared again after a repair. Copy the candidates out before it ends.
  function captureExports() {
    var names = ['__default__'];
    if (window.__previewComponentName) names.push(window.__previewComponentName);
    return names.map(function(n) {
      return 'if (typeof ' + n + ' !== "undefined") window.__previewExports[' + JSON.stringify(n) + '] = ' + n + ';';
    }).join('\n');
  }

  function evaluate() {
    if (compiled === null) return { ok: false, kind: 'runtime', message: 'Nothing to evaluate' };
    window.__previewExports = {};
    try {
      (0, eval)('(function() {\n' + compiled + '\n;\n' + captureExports() + '\n})();');
      return { ok: true };
    } catch (e) {
      return { ok: false, kind: e instanceof ReferenceError ? 'reference' : 'runtime', message: describe(e) };
    }
  }

  function define(code) {
    try {
      (0, eval)(code);
      return { ok: true };
    } catch (e) {
      return { ok: false, message: describe(e) };
    }
  }

  function resolve(name) {
    var ex = window.__previewExports || {};
    component = null;
    if (ex.__default__ !== undefined) { component = ex.__default__; return '__default__'; }
    if (name && ex[name] !== undefined) { component = ex[name]; return name; }
    if (name && /^[A-Za-z_$][\w$]*$/.test(name)) {
      var found;
      try { found = (0, eval)('typeof ' + name + ' !== "undefined" ? ' + name + ' : undefined'); } catch (e) { found = undefined; }
      if (found !== undefined) { component = found; return name; }
    }
    return null;
  }

  function readProps() {
    var raw = window.__previewProps || {};
    var out = {};
    for (var k in raw) {
      if (!Object.prototype.hasOwnProperty.call(raw, k)) continue;
      out[k] = raw[k];
    }
    if (out.theme) out.theme = __safeTheme(out.theme);
    return out;
  }

  function ErrorBoundary() { React.Component.apply(this, arguments); this.state = { error: null }; }
  ErrorBoundary.prototype = Object.create(React.Component.prototype);
  ErrorBoundary.prototype.constructor = ErrorBoundary;
  ErrorBoundary.getDerivedStateFromError = function(e) {
    var msg = describe(e);
    st.caught = true;
    st.error = msg;
    if (!st.mounting) emit('preview-error', { error: 'Component error: ' + msg });
    return { error: msg };
  };
  ErrorBoundary.prototype.render = function() {
    if (this.state && this.state.error) {
      return React.createElement('div', { className: 'error-box' }, 'Component error:\n' + this.state.error);
    }
    return this.props.children;
  };

  function PreviewWrapper(p) {
    var pair = React.useState(__frame);
    var setLocal = pair[1];
    React.useEffect(function() {
      frameListeners.push(setLocal);
      return function() {
        frameListeners = frameListeners.filter(function(fn) { return fn !== setLocal; });
      };
    }, []);
    if (!p.component) {
      return React.createElement('div', { className: 'error-box' }, 'No component found to render.');
    }
    return React.createElement(ErrorBoundary, null,
      React.createElement('div', {
        style: { width: '100%', height: '100vh', position: 'relative', overflow: 'hidden' },
      }, React.createElement(p.component, p.props)));
  }

  function mount() {
    st.caught = false;
    st.error = null;
    st.mounting = true;
    try {
      var root = ReactDOM.createRoot(rootEl);
      ReactDOM.flushSync(function() {
        root.render(React.createElement(PreviewWrapper, { component: component, props: readProps() }));
      });
    } catch (e) {
      st.mounting = false;
      return { ok: false, message: 'Render: ' + describe(e) };
    }
    st.mounting = false;
    if (!component) return { ok: false, message: 'No component found to render.' };
    if (st.caught) return { ok: false, message: 'Component error: ' + st.error };
    return { ok: true };
  }

  function setFrame(f) {
    __frame = f;
    for (var i = 0; i < frameListeners.length; i++) frameListeners[i](f);
    return f;
  }

  function standIn(name) {
    if (name[0] === name[0].toUpperCase()) {
      return 'var ' + name + ' = function(p) { return React.createElement("div", { style: p && p.style, className: p && p.className, "data-mock": ' + JSON.stringify(name) + ' }, p && p.children != null ? p.children : ' + JSON.stringify(name) + '); };';
    }
    return 'var ' + name + ' = function() { var a = arguments[0]; if (typeof a === "number") return { opacity: 1, transform: "none" }; return a || {}; };';
  }

  function missingName(message) {
    var m = /(\w+) is not defined/.exec(message) || /Can't find variable: (\w+)/.exec(message);
    return m ? m[1] : null;
  }

  function fail(text) {
    showError(text);
    emit('preview-error', { error: text });
  }

  function autorun() {
    var t = transpile();
    if (!t.ok) { fail('Babel transform: ' + t.message); return; }
    var budget = window.__previewMaxRepairs == null ? 5 : window.__previewMaxRepairs;
    var mocked = [];
    for (;;) {
      var r = evaluate();
      if (r.ok) break;
      var name = r.kind === 'reference' ? missingName(r.message) : null;
      if (!name || mocked.length >= budget || mocked.indexOf(name) >= 0) { fail('Runtime: ' + r.message); return; }
      mocked.push(name);
      define(standIn(name));
    }
    if (mocked.length) emit('preview-warning', { autoMocked: mocked });
    resolve(window.__previewComponentName);
    var m = mount();
    if (!m.ok) { fail(m.message); return; }
    emit('preview-success');
    var f = 0;
    clockId = setInterval(function() {
      f = (f + 1) % (window.__previewClockWrap || 150);
      setFrame(f);
    }, window.__previewClockMs || 30);
  }

  return {
    source: source,
    transpile: transpile,
    evaluate: evaluate,
    define: define,
    resolve: resolve,
    mount: mount,
    setFrame: setFrame,
    showError: showError,
    emit: emit,
    autorun: autorun,
  };
})();
if (!window.__previewDriven) window.__sandbox.autorun();
"""
