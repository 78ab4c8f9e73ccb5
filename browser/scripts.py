"""
Page-side JavaScript payloads.

Every constant here is passed verbatim to ``page.evaluate`` (or
``page.wait_for_function``).  Scripts only gather facts or perform the
minimal DOM mutation needed; all heuristics (frame matching, id extraction,
classification, filtering) live on the Python side.

Coverage:
- Document readiness
- Frame snapshots (name, src, visibility, geometry, response field)
- reCAPTCHA client registry adapter (flattened, serialisable view)
- reCAPTCHA token injection and callback invocation
- Expression callback evaluation (opt-in, unsafe)
- hCaptcha challenge-passed message
- Visual feedback tint
"""

# ============================================================================
# 1. READINESS
# ============================================================================
DOCUMENT_READY = """
() => new Promise((resolve) => {
    if (!document || !window) {
        return resolve(true);
    }
    if (/^loaded|^i|^c/.test(document.readyState)) {
        return resolve(true);
    }
    function onReady() {
        document.removeEventListener('DOMContentLoaded', onReady);
        window.removeEventListener('load', onReady);
        resolve(true);
    }
    document.addEventListener('DOMContentLoaded', onReady);
    window.addEventListener('load', onReady);
})
"""

RECAPTCHA_CLIENT_READY = """
() => Object.keys((window.___grecaptcha_cfg || {}).clients || {}).length
"""

HCAPTCHA_CLIENT_READY = """
() => !!window.hcaptcha
"""

# ============================================================================
# 2. FRAME SNAPSHOT
# arg: {selector, responseField}
# ============================================================================
FRAME_SNAPSHOT = """
(arg) => {
    const isVisible = (el) => !!(
        el.offsetWidth ||
        el.offsetHeight ||
        (typeof el.getClientRects === 'function' && el.getClientRects().length)
    );
    const rectOf = (el) => {
        const r = el.getBoundingClientRect();
        return {top: r.top, left: r.left, bottom: r.bottom, right: r.right};
    };
    const hasResponseField = (el) => {
        if (!arg.responseField) return false;
        const sel = `[name='${arg.responseField}']`;
        const form = el.closest('form');
        if (form) return !!form.querySelector(sel);
        return !!(document.body && document.body.querySelector(sel));
    };
    const frames = Array.from(document.querySelectorAll(arg.selector)).map((el) => ({
        name: el.getAttribute('name') || '',
        src: el.getAttribute('src') || '',
        visible: isVisible(el),
        rect: rectOf(el),
        widgetIdAttr: el.getAttribute('data-hcaptcha-widget-id'),
        inVisibleContainer: !!el.closest("div[style*='visible']"),
        hasResponseElement: hasResponseField(el),
    }));
    return {
        url: document.location ? document.location.href : '',
        viewport: {
            width: window.innerWidth || document.documentElement.clientWidth,
            height: window.innerHeight || document.documentElement.clientHeight,
        },
        frames: frames,
    };
}
"""

# ============================================================================
# 3. RECAPTCHA CLIENT REGISTRY
# The registry is a nested, circular object graph with generated keys.  It is
# flattened two levels deep (DOM elements skipped) before anything is read.
# ============================================================================
_CLIENT_HELPERS = """
    const isObject = (x) => x && typeof x === 'object';
    const isHTML = (x) => x && typeof HTMLElement !== 'undefined' && x instanceof HTMLElement;
    const flatten = (item, levels = 2) => {
        const flat = {};
        for (let i = 0; i < levels; i++) {
            item = Object.keys(flat).length ? flat : item;
            Object.keys(item).forEach((key) => {
                if (isHTML(item[key])) return;
                if (isObject(item[key])) {
                    Object.keys(item[key]).forEach((innerKey) => {
                        const value = item[key][innerKey];
                        if (isHTML(value)) return;
                        const name = isObject(value) ? `obj_${key}_${innerKey}` : `${innerKey}`;
                        flat[name] = value;
                    });
                } else {
                    flat[key] = item[key];
                }
            });
        }
        return flat;
    };
    const getClients = () => {
        if (!window.__google_recaptcha_client) return null;
        const cfg = window.___grecaptcha_cfg;
        if (!cfg || !cfg.clients || !Object.keys(cfg.clients).length) return null;
        return cfg.clients;
    };
    const findClient = (clients, id) => Object.values(clients || {}).find(
        (obj) => isObject(obj) && Object.keys(obj).some((key) => obj[key] === id)
    );
"""

LIST_RECAPTCHA_CLIENTS = """
() => {
""" + _CLIENT_HELPERS + """
    const clients = getClients();
    if (!clients) return null;
    const serialise = (flat) => {
        const out = {};
        Object.keys(flat).forEach((key) => {
            const value = flat[key];
            if (typeof value === 'function') {
                out[key] = {__function__: value.name || 'anonymous'};
            } else if (value === null || ['string', 'number', 'boolean'].includes(typeof value)) {
                out[key] = value;
            }
        });
        return out;
    };
    const ids = Array.from(document.querySelectorAll("iframe[src*='recaptcha'][name^='a-']"))
        .map((el) => (el.getAttribute('name') || '').split('-').slice(-1)[0])
        .filter((id) => id);
    const result = {};
    ids.forEach((id) => {
        if (result[id]) return;
        const client = findClient(clients, id);
        if (!client) return;
        const flat = serialise(flatten(client));
        flat.widgetId = flat.id === undefined ? null : flat.id;
        flat.id = id;
        result[id] = flat;
    });
    return result;
}
"""

# ============================================================================
# 4. RECAPTCHA INJECTION
# arg: {id, text, anchorSelector, bframeSelector, invokeDirectCallback}
# ============================================================================
INJECT_RECAPTCHA_SOLUTION = """
(arg) => {
""" + _CLIENT_HELPERS + """
    const result = {frameFound: false, responseElement: false, responseCallback: false, error: null};
    const frame = document.querySelector(arg.anchorSelector);
    if (!frame) return result;
    result.frameFound = true;

    const popup = document.querySelector(arg.bframeSelector);
    if (popup) {
        const r = popup.getBoundingClientRect();
        const inView = r.top >= 0 && r.left >= 0 &&
            r.bottom <= (window.innerHeight || document.documentElement.clientHeight) &&
            r.right <= (window.innerWidth || document.documentElement.clientWidth);
        if (inView) {
            let el = popup;
            while (el && el.parentElement && el.parentElement !== document.body) {
                el = el.parentElement;
            }
            el.style.visibility = 'hidden';
        }
    }

    const sel = "[name='g-recaptcha-response']";
    const form = frame.closest('form');
    const input = form ? form.querySelector(sel) : (document.body ? document.body.querySelector(sel) : null);
    if (input) {
        input.innerHTML = arg.text;
        input.value = arg.text;
        result.responseElement = true;
    }

    if (arg.invokeDirectCallback) {
        try {
            const client = findClient(getClients(), arg.id);
            const callback = client ? flatten(client).callback : undefined;
            if (typeof callback !== 'function') {
                throw new Error(`Callback function not found for id '${arg.id}'`);
            }
            callback.call(window, arg.text);
            result.responseCallback = true;
        } catch (error) {
            result.error = String(error);
        }
    }
    return result;
}
"""

# ============================================================================
# 5. EXPRESSION CALLBACK (UNSAFE)
# Evaluates a page-registered string as code.  Only used when the caller
# explicitly enabled ``allow_expression_callbacks``.
# arg: {expression, text}
# ============================================================================
EVALUATE_EXPRESSION_CALLBACK = """
(arg) => {
    const fn = eval(arg.expression); // eslint-disable-line no-eval
    if (typeof fn !== 'function') {
        throw new Error(`Expression '${arg.expression}' is not a function`);
    }
    fn.call(window, arg.text);
    return true;
}
"""

# ============================================================================
# 6. HCAPTCHA
# arg: {id, text, expiration}
# ============================================================================
HCAPTCHA_CHALLENGE_PASSED = """
(arg) => {
    window.postMessage(JSON.stringify({
        id: arg.id,
        label: 'challenge-closed',
        source: 'hcaptcha',
        contents: {
            event: 'challenge-passed',
            expiration: arg.expiration,
            response: arg.text,
        },
    }), '*');
    return true;
}
"""

# ============================================================================
# 7. VISUAL FEEDBACK
# arg: {selector, filter}
# ============================================================================
PAINT_FRAMES = """
(arg) => {
    let painted = 0;
    document.querySelectorAll(arg.selector).forEach((el) => {
        try {
            el.style.filter = arg.filter;
            painted += 1;
        } catch (error) {
            // element is gone or read-only
        }
    });
    return painted;
}
"""
