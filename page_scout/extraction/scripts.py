# page_scout/extraction/scripts.py
"""
JavaScript evaluated inside the page by the extraction stages.

Every snippet is a single arrow function passed to ``page.evaluate`` or
``page.eval_on_selector_all`` and returns plain JSON-serialisable data.
"""
from __future__ import annotations

__all__ = (
    "META_TAGS",
    "JSON_LD_SOURCES",
    "MICRODATA",
    "HEADINGS",
    "LISTS",
    "IMAGES",
    "FORMS",
    "TABLES",
    "IFRAMES",
    "SHADOW_ROOTS",
    "LINKS",
    "COMPUTED_STYLES",
    "STORAGE",
    "SCROLL_HEIGHT",
    "SCROLL_TO_BOTTOM",
    "SCROLL_TO_TOP",
    "ELEMENT_IS_VISIBLE",
    "ELEMENT_SELECTOR",
    "TEXT_NODES",
    "STYLE_PROPERTIES",
    "MEDIA_SELECTOR",
)

STYLE_PROPERTIES = (
    "color",
    "background-color",
    "font-size",
    "font-family",
    "font-weight",
    "text-align",
    "display",
    "position",
    "margin",
    "padding",
    "border",
    "border-radius",
)

MEDIA_SELECTOR = "img, video, iframe"

META_TAGS = """
els => els.map(el => ({
  name: el.getAttribute('name') || el.getAttribute('property'),
  content: el.getAttribute('content'),
  charset: el.getAttribute('charset'),
  httpEquiv: el.getAttribute('http-equiv')
}))
"""

# raw text only; parsing happens in Python so one bad block drops alone
JSON_LD_SOURCES = "els => els.map(el => el.textContent || '')"

MICRODATA = """
els => els.map(el => ({
  type: el.getAttribute('itemtype'),
  id: el.getAttribute('itemid'),
  properties: Array.from(el.querySelectorAll('[itemprop]')).map(prop => ({
    name: prop.getAttribute('itemprop'),
    content: prop.getAttribute('content') || (prop.textContent || '').trim()
  }))
}))
"""

HEADINGS = """
els => els.map(el => ({
  text: (el.textContent || '').trim(),
  id: el.id,
  classes: Array.from(el.classList)
}))
"""

LISTS = """
els => els.map(el => ({
  type: el.tagName.toLowerCase(),
  items: Array.from(el.querySelectorAll('li')).map(li => (li.textContent || '').trim()),
  id: el.id,
  classes: Array.from(el.classList)
}))
"""

IMAGES = """
els => els.map(el => ({
  src: el.src,
  alt: el.alt,
  width: el.width,
  height: el.height,
  id: el.id,
  classes: Array.from(el.classList)
}))
"""

FORMS = """
els => els.map(el => ({
  action: el.action,
  method: el.method,
  id: el.id,
  classes: Array.from(el.classList),
  inputs: Array.from(el.querySelectorAll('input, select, textarea')).map(input => ({
    type: input.type || input.tagName.toLowerCase(),
    name: input.name,
    id: input.id,
    placeholder: input.placeholder,
    required: input.required,
    value: input.value,
    disabled: input.disabled,
    checked: input.checked
  }))
}))
"""

TABLES = """
els => els.map(el => ({
  id: el.id,
  classes: Array.from(el.classList),
  headers: Array.from(el.querySelectorAll('th')).map(th => (th.textContent || '').trim()),
  rows: Array.from(el.querySelectorAll('tr')).map(tr =>
    Array.from(tr.querySelectorAll('td')).map(td => (td.textContent || '').trim()))
}))
"""

IFRAMES = """
els => els.map(el => ({
  src: el.src,
  id: el.id,
  name: el.name,
  width: el.width,
  height: el.height,
  classes: Array.from(el.classList)
}))
"""

# explicit stack instead of recursion: deep trees must not blow the JS stack
SHADOW_ROOTS = """
() => {
  const found = [];
  if (!document.body) return found;
  const stack = [document.body];
  while (stack.length) {
    const el = stack.pop();
    if (el.shadowRoot) {
      found.push({
        tagName: el.tagName,
        id: el.id,
        classes: Array.from(el.classList),
        shadowContent: Array.from(el.shadowRoot.querySelectorAll('*')).map(child => ({
          tagName: child.tagName,
          id: child.id,
          classes: Array.from(child.classList),
          text: (child.textContent || '').trim()
        }))
      });
      for (let i = el.shadowRoot.children.length - 1; i >= 0; i--) {
        stack.push(el.shadowRoot.children[i]);
      }
    }
    for (let i = el.children.length - 1; i >= 0; i--) {
      stack.push(el.children[i]);
    }
  }
  return found;
}
"""

LINKS = """
els => els.map(el => ({
  text: (el.textContent || '').trim(),
  href: el.href,
  title: el.title,
  target: el.target,
  rel: el.rel,
  id: el.id,
  classes: Array.from(el.classList),
  isExternal: el.hostname !== window.location.hostname
}))
"""

COMPUTED_STYLES = """
(props) => {
  const out = {};
  document.querySelectorAll('*').forEach(el => {
    let selector = null;
    if (el.id) {
      selector = '#' + el.id;
    } else if (el.classList && el.classList.length > 0) {
      selector = '.' + Array.from(el.classList).join('.');
    }
    if (!selector) return;
    const rect = el.getBoundingClientRect();
    const computed = window.getComputedStyle(el);
    const styles = {};
    props.forEach(p => { styles[p] = computed.getPropertyValue(p); });
    out[selector] = {
      position: {top: rect.top, left: rect.left, width: rect.width, height: rect.height},
      styles: styles
    };
  });
  return out;
}
"""

STORAGE = """
() => {
  const dump = (store) => {
    const data = {};
    for (let i = 0; i < store.length; i++) {
      const key = store.key(i);
      data[key] = store.getItem(key);
    }
    return data;
  };
  return {
    localStorage: dump(window.localStorage),
    sessionStorage: dump(window.sessionStorage),
    cookies: document.cookie
  };
}
"""

SCROLL_HEIGHT = "() => document.body ? document.body.scrollHeight : 0"
SCROLL_TO_BOTTOM = "() => window.scrollTo(0, document.body ? document.body.scrollHeight : 0)"
SCROLL_TO_TOP = "() => window.scrollTo(0, 0)"

ELEMENT_IS_VISIBLE = """
el => {
  const style = window.getComputedStyle(el);
  return !!style &&
    style.display !== 'none' &&
    style.visibility !== 'hidden' &&
    style.opacity !== '0' &&
    el.offsetWidth > 0 &&
    el.offsetHeight > 0;
}
"""

ELEMENT_SELECTOR = """
el => {
  if (el.id) return '#' + el.id;
  if (el.className && typeof el.className === 'string' && el.className.trim()) {
    return '.' + el.className.trim().split(/\\s+/).join('.');
  }
  return el.tagName.toLowerCase();
}
"""

TEXT_NODES = """
() => {
  const root = document.body || document.documentElement;
  if (!root) return [];
  const walker = document.createTreeWalker(root, NodeFilter.SHOW_TEXT, null);
  const texts = [];
  let node;
  while ((node = walker.nextNode())) {
    const text = (node.textContent || '').trim();
    if (text) texts.push(text);
  }
  return texts;
}
"""
