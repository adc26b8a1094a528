"""
演出アセット — ページへ注入するスタイルシートとスクリプト

オーバーレイ要素は全て data-demo-effect 属性で識別し、一括削除できるようにする。
ズーム中は body に data-demo-zoomed 属性を付与する。
"""

BODY_TRANSITION = "transform 0.5s cubic-bezier(0.4, 0.0, 0.2, 1)"

STYLESHEET = """
.demo-highlight {
  position: absolute;
  pointer-events: none;
  z-index: 999999;
  box-sizing: border-box;
  transition: all 0.3s cubic-bezier(0.4, 0.0, 0.2, 1);
}

.demo-highlight.pulse {
  animation: demo-pulse 1.5s ease-in-out infinite;
}

.demo-highlight.glow {
  animation: demo-glow 2s ease-in-out infinite;
}

@keyframes demo-pulse {
  0%, 100% { opacity: 1; transform: scale(1); }
  50% { opacity: 0.7; transform: scale(1.02); }
}

@keyframes demo-glow {
  0%, 100% { box-shadow: 0 0 20px currentColor; }
  50% { box-shadow: 0 0 40px currentColor; }
}

.demo-spotlight-overlay {
  position: fixed;
  top: 0;
  left: 0;
  width: 100vw;
  height: 100vh;
  pointer-events: none;
  z-index: 999998;
  transition: opacity 0.5s ease-in-out;
}

.demo-narration-overlay {
  position: fixed;
  left: 0;
  right: 0;
  padding: 24px 48px;
  background: rgba(0, 0, 0, 0.85);
  color: white;
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
  font-weight: 500;
  text-align: center;
  z-index: 1000000;
  pointer-events: none;
  opacity: 0;
  transition: opacity 0.4s ease-in-out;
  line-height: 1.5;
}

.demo-narration-overlay.top {
  top: 0;
  border-bottom: 2px solid rgba(255, 255, 255, 0.1);
}

.demo-narration-overlay.bottom {
  bottom: 0;
  border-top: 2px solid rgba(255, 255, 255, 0.1);
}

.demo-narration-overlay.center {
  top: 50%;
  transform: translateY(-50%);
}

.demo-narration-overlay.visible {
  opacity: 1;
}
"""

# ---------------------------------------------------------------------------
# 計測
# ---------------------------------------------------------------------------

# 要素が無い場合は null を返す
MEASURE_ELEMENT_JS = """
(selector) => {
  const element = document.querySelector(selector);
  if (!element) {
    return null;
  }
  const rect = element.getBoundingClientRect();
  return {
    x: rect.left,
    y: rect.top,
    width: rect.width,
    height: rect.height,
    scrollX: window.scrollX,
    scrollY: window.scrollY,
    viewportWidth: window.innerWidth,
    viewportHeight: window.innerHeight,
  };
}
"""

# ---------------------------------------------------------------------------
# オーバーレイ挿入
# ---------------------------------------------------------------------------

INSERT_HIGHLIGHT_JS = """
({ box, color, borderWidth, style }) => {
  const highlight = document.createElement('div');
  highlight.className = `demo-highlight ${style}`;
  highlight.style.cssText = `
    top: ${box.top}px;
    left: ${box.left}px;
    width: ${box.width}px;
    height: ${box.height}px;
    border: ${borderWidth}px solid ${color};
    color: ${color};
  `;
  highlight.setAttribute('data-demo-effect', 'highlight');
  document.body.appendChild(highlight);
}
"""

APPLY_ZOOM_JS = """
({ origin, transform, transition }) => {
  document.body.style.transformOrigin = origin;
  document.body.style.transform = transform;
  document.body.style.transition = transition;
  document.body.setAttribute('data-demo-zoomed', 'true');
}
"""

INSERT_SPOTLIGHT_JS = """
({ box, dimness, borderRadius }) => {
  const svgNS = 'http://www.w3.org/2000/svg';
  const overlay = document.createElement('div');
  overlay.className = 'demo-spotlight-overlay';
  overlay.setAttribute('data-demo-effect', 'spotlight');

  const svg = document.createElementNS(svgNS, 'svg');
  svg.setAttribute('width', '100%');
  svg.setAttribute('height', '100%');
  svg.style.display = 'block';

  const defs = document.createElementNS(svgNS, 'defs');
  const mask = document.createElementNS(svgNS, 'mask');
  mask.setAttribute('id', 'demo-spotlight-mask');

  const visible = document.createElementNS(svgNS, 'rect');
  visible.setAttribute('width', '100%');
  visible.setAttribute('height', '100%');
  visible.setAttribute('fill', 'white');

  const cutout = document.createElementNS(svgNS, 'rect');
  cutout.setAttribute('x', String(box.left));
  cutout.setAttribute('y', String(box.top));
  cutout.setAttribute('width', String(box.width));
  cutout.setAttribute('height', String(box.height));
  cutout.setAttribute('rx', String(borderRadius));
  cutout.setAttribute('fill', 'black');

  mask.appendChild(visible);
  mask.appendChild(cutout);
  defs.appendChild(mask);
  svg.appendChild(defs);

  const dim = document.createElementNS(svgNS, 'rect');
  dim.setAttribute('width', '100%');
  dim.setAttribute('height', '100%');
  dim.setAttribute('fill', `rgba(0, 0, 0, ${dimness})`);
  dim.setAttribute('mask', 'url(#demo-spotlight-mask)');

  svg.appendChild(dim);
  overlay.appendChild(svg);
  document.body.appendChild(overlay);
}
"""

# 字幕ノードはセッション中 1 つだけ作り、以降は内容を更新する
SHOW_NARRATION_JS = """
({ text, position, fontSize }) => {
  let overlay = document.querySelector('.demo-narration-overlay');
  if (!overlay) {
    overlay = document.createElement('div');
    overlay.setAttribute('data-demo-effect', 'narration');
    document.body.appendChild(overlay);
  }
  overlay.textContent = text;
  overlay.style.fontSize = `${fontSize}px`;
  overlay.className = `demo-narration-overlay ${position}`;
  setTimeout(() => overlay.classList.add('visible'), 50);
}
"""

# ---------------------------------------------------------------------------
# 解除
# ---------------------------------------------------------------------------

CLEAR_HIGHLIGHTS_JS = """
() => {
  document.querySelectorAll('[data-demo-effect="highlight"]').forEach((el) => el.remove());
}
"""

CLEAR_SPOTLIGHTS_JS = """
() => {
  document.querySelectorAll('[data-demo-effect="spotlight"]').forEach((el) => el.remove());
}
"""

CLEAR_ZOOM_JS = """
(transition) => {
  if (document.body.hasAttribute('data-demo-zoomed')) {
    document.body.style.transform = '';
    document.body.style.transformOrigin = '';
    document.body.style.transition = transition;
    document.body.removeAttribute('data-demo-zoomed');
  }
}
"""

CLEAR_NARRATION_JS = """
(fadeMs) => {
  const overlay = document.querySelector('.demo-narration-overlay');
  if (overlay) {
    overlay.classList.remove('visible');
    setTimeout(() => overlay.remove(), fadeMs);
  }
}
"""
