# -*- coding: utf-8 -*-
"""
HTML served to the browser: the main page and the on-screen result view.

The result is rendered client-side with marked + MathJax, which understands a
fuller markdown dialect (lists, tables, $...$ math) than the print renderer.
"""

import html
import json

_HEAD = r"""
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width, initial-scale=1" />
<script>
  window.MathJax = {
    tex: { inlineMath: [['$', '$'], ['\\(', '\\)']], displayMath: [['$$', '$$'], ['\\[', '\\]']] },
    svg: { fontCache: 'global' }
  };
</script>
<script src="https://cdn.jsdelivr.net/npm/marked/marked.min.js"></script>
<script src="https://cdn.jsdelivr.net/npm/dompurify@3.0.6/dist/purify.min.js"></script>
<script src="https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-svg.js"></script>
<script>
  // math spans become opaque tokens so _ and * inside them are not read as emphasis
  marked.setOptions({ gfm: true, breaks: true, mangle: false, headerIds: false });

  function escapeMath(s) {
    return s.replace(/&/g, '&amp;').replace(/</g, '&lt;').replace(/>/g, '&gt;');
  }

  marked.use({
    extensions: [
      {
        name: 'math',
        level: 'inline',
        start(src) {
          const match = src.match(/\\\(|\\\[|\$/);
          return match ? match.index : undefined;
        },
        tokenizer(src) {
          const displayDollar = src.match(/^\$\$([\s\S]+?)\$\$/);
          if (displayDollar) {
            return { type: 'math', raw: displayDollar[0], text: displayDollar[1], display: true };
          }

          const displayBracket = src.match(/^\\\[([\s\S]+?)\\\]/);
          if (displayBracket) {
            return { type: 'math', raw: displayBracket[0], text: displayBracket[1], display: true };
          }

          const inlineParen = src.match(/^\\\(([\s\S]+?)\\\)/);
          if (inlineParen) {
            return { type: 'math', raw: inlineParen[0], text: inlineParen[1], display: false };
          }

          const inlineDollar = src.match(/^\$(?!\s)([^$\n]+?)(?<!\s)\$/);
          if (inlineDollar) {
            return { type: 'math', raw: inlineDollar[0], text: inlineDollar[1], display: false };
          }

          return undefined;
        },
        renderer(token) {
          if (token.display) {
            return `<div class="math-block">\\[${escapeMath(token.text)}\\]</div>`;
          }

          return `<span class="math-inline">\\(${escapeMath(token.text)}\\)</span>`;
        }
      }
    ]
  });
</script>
<style>
  :root { --bg: #f4f4f5; --panel: #fff; --border: #d4d4d8; --text: #18181b; --muted: #71717a; --accent: #2563eb; }
  * { box-sizing: border-box; }
  body { font-family: "Hiragino Kaku Gothic ProN", "Noto Sans JP", sans-serif; margin: 0; background: var(--bg); color: var(--text); }
  header { display: flex; justify-content: space-between; align-items: center; padding: 12px 20px; background: var(--panel); border-bottom: 1px solid var(--border); }
  header h1 { margin: 0; font-size: 20px; }
  main { display: grid; grid-template-columns: 360px 1fr; gap: 16px; padding: 16px; }
  aside, section.result { background: var(--panel); border: 1px solid var(--border); border-radius: 8px; padding: 16px; }
  .image-grid { display: grid; grid-template-columns: repeat(3, 1fr); gap: 8px; }
  .image-item { position: relative; }
  .image-item img { width: 100%; border: 1px solid var(--border); }
  .image-item button { position: absolute; top: 2px; right: 2px; }
  .page-number { font-size: 11px; color: var(--muted); }
  label { display: block; margin-top: 8px; font-size: 13px; }
  input, select, textarea { width: 100%; padding: 6px; }
  .chips button.active { background: var(--accent); color: #fff; }
  .primary { width: 100%; margin-top: 12px; padding: 10px; background: var(--accent); color: #fff; border: 0; border-radius: 6px; }
  .primary:disabled { opacity: .5; }
  #camera video { width: 100%; }
  .hidden { display: none; }
  .modal { position: fixed; inset: 0; background: rgba(0,0,0,.4); display: flex; align-items: center; justify-content: center; }
  .modal > div { background: var(--panel); padding: 20px; border-radius: 8px; width: 360px; }
  .placeholder { color: var(--muted); }
</style>
"""

INDEX_TEMPLATE = r"""<!doctype html>
<html lang="ja">
<head>
<title>RUIDAI</title>
%(head)s
</head>
<body>
<header>
  <h1>RUIDAI</h1>
  <button id="open-settings">⚙️</button>
</header>

<div id="settings" class="modal hidden">
  <div>
    <h3>設定</h3>
    <label>API Key:<input id="api-key" type="password" placeholder="Gemini API Key" /></label>
    <a href="https://aistudio.google.com/app/apikey" target="_blank" rel="noopener noreferrer">キーを取得 ↗</a>
    <label>モデル:<select id="model"></select></label>
    <button class="primary" id="close-settings">閉じる</button>
  </div>
</div>

<main>
  <aside>
    <div id="camera" class="hidden">
      <video id="video" playsinline autoplay></video>
      <canvas id="canvas" class="hidden"></canvas>
      <button id="capture">📷 撮影</button>
      <button id="stop-camera">✕ 閉じる</button>
    </div>
    <div id="upload-area">
      <button id="start-camera">カメラを起動</button>
      <input id="file" type="file" accept="image/*" multiple />
      <p class="placeholder">画像を貼り付け (Ctrl+V) もできます</p>
    </div>

    <h3>問題画像 (<span id="image-count">0</span>枚)</h3>
    <div class="image-grid" id="images"></div>

    <label>問題数:<input id="question-count" type="number" min="1" max="10" value="3" /></label>
    <label>生徒名:<input id="student" type="text" placeholder="生徒名" /></label>
    <label>講師名:<input id="instructor" type="text" placeholder="講師名" /></label>
    <label>日付:<input id="print-date" type="date" /></label>
    <div class="chips" id="presets"></div>
    <textarea id="custom" rows="2" placeholder="追加指示..."></textarea>

    <button class="primary" id="generate" disabled>類題を作成 ✨</button>
  </aside>

  <section class="result">
    <h2>結果</h2>
    <div>
      <button data-mode="problems" class="print">問題を印刷</button>
      <button data-mode="answers" class="print">解答を印刷</button>
      <button data-mode="guide" class="print">講師ガイドを印刷</button>
      <button data-mode="answers_guide" class="print">解答+講師ガイド</button>
      <button data-mode="all" class="print">すべて印刷</button>
      <button id="save-sheet">保存</button>
    </div>
    <div id="result"><p class="placeholder">📝 問題画像を撮影し、「類題を作成」ボタンを押してください</p></div>
    <h3>保存したプリント</h3>
    <ul id="sheets"></ul>
  </section>
</main>

<script>
const $ = (id) => document.getElementById(id);
let stream = null;

async function api(path, opts) {
  const r = await fetch(path, opts);
  const body = (r.headers.get('content-type') || '').includes('json') ? await r.json() : await r.text();
  if (!r.ok) throw new Error((body && (body.detail || body.message)) || r.statusText);
  return body;
}
function fail(prefix) { return (e) => { console.error(e); alert(prefix + e.message); }; }

function renderMarkdown(target, text) {
  target.innerHTML = DOMPurify.sanitize(marked.parse(text || ''));
  if (window.MathJax && window.MathJax.typesetPromise) {
    window.MathJax.typesetPromise([target]).catch((err) => console.log('MathJax render error:', err));
  }
}

async function refreshImages() {
  const data = await api('/images');
  $('image-count').textContent = data.images.length;
  $('generate').disabled = data.images.length === 0;
  $('images').innerHTML = '';
  data.images.forEach((src, i) => {
    const d = document.createElement('div');
    d.className = 'image-item';
    d.innerHTML = `<img src="${src}" alt="問題 ${i + 1}"><button>✕</button><span class="page-number">P.${i + 1}</span>`;
    d.querySelector('button').onclick = () => api('/images/' + i, { method: 'DELETE' }).then(refreshImages).catch(fail(''));
    $('images').appendChild(d);
  });
}

async function loadSettings() {
  const [s, models, presets] = await Promise.all([api('/settings'), api('/models'), api('/presets')]);
  $('model').innerHTML = models.map(m => `<option value="${m.value}">${m.label}</option>`).join('');
  $('api-key').value = s.api_key; $('model').value = s.model;
  $('student').value = s.student; $('instructor').value = s.instructor;
  $('presets').innerHTML = '';
  presets.forEach(p => {
    const b = document.createElement('button');
    b.textContent = p.label;
    b.onclick = () => { $('custom').value = p.value; };
    $('presets').appendChild(b);
  });
}
function saveSettings() {
  return api('/settings', { method: 'PUT', headers: { 'content-type': 'application/json' },
    body: JSON.stringify({ api_key: $('api-key').value, model: $('model').value,
                           student: $('student').value, instructor: $('instructor').value }) });
}
['api-key', 'model', 'student', 'instructor'].forEach(id => $(id).addEventListener('change', saveSettings));

$('open-settings').onclick = () => $('settings').classList.remove('hidden');
$('close-settings').onclick = () => { $('settings').classList.add('hidden'); saveSettings(); };

$('start-camera').onclick = async () => {
  if (!navigator.mediaDevices || !navigator.mediaDevices.getUserMedia) {
    alert('カメラ機能がサポートされていません。HTTPSまたはローカルホストで接続してください。');
    return;
  }
  try {
    stream = await navigator.mediaDevices.getUserMedia({ video: { facingMode: { ideal: 'environment' } } });
    $('video').srcObject = stream;
    $('camera').classList.remove('hidden');
  } catch (e) { fail('カメラの起動に失敗しました。詳細: ')(e); }
};
function stopCamera() {
  if (stream) { stream.getTracks().forEach(t => t.stop()); stream = null; }
  $('camera').classList.add('hidden');
}
$('stop-camera').onclick = stopCamera;
$('capture').onclick = () => {
  const v = $('video'), c = $('canvas');
  c.width = v.videoWidth; c.height = v.videoHeight;
  c.getContext('2d').drawImage(v, 0, 0, c.width, c.height);
  const url = c.toDataURL('image/png');
  stopCamera();
  pasteDataUrl(url);
};

function pasteDataUrl(url) {
  return api('/images/paste', { method: 'POST', headers: { 'content-type': 'application/json' },
    body: JSON.stringify({ data_url: url }) }).then(refreshImages).catch(fail(''));
}
window.addEventListener('paste', (e) => {
  const items = (e.clipboardData && e.clipboardData.items) || [];
  for (const item of items) {
    if (item.type.indexOf('image') === 0) {
      const reader = new FileReader();
      reader.onload = (ev) => pasteDataUrl(ev.target.result);
      reader.readAsDataURL(item.getAsFile());
    }
  }
});
$('file').onchange = async (e) => {
  for (const f of e.target.files) {
    const fd = new FormData(); fd.append('file', f);
    await api('/images', { method: 'POST', body: fd }).catch(fail(''));
  }
  e.target.value = '';
  refreshImages();
};

$('generate').onclick = async () => {
  $('generate').disabled = true;
  $('generate').textContent = '作成中...';
  $('result').innerHTML = '<p>類題を作成中...</p>';
  const fd = new FormData();
  fd.append('question_count', $('question-count').value || '3');
  fd.append('custom_instructions', $('custom').value);
  try {
    const data = await api('/generate', { method: 'POST', body: fd });
    renderMarkdown($('result'), data.result);
  } catch (e) {
    if (/APIキー/.test(e.message)) $('settings').classList.remove('hidden');
    fail('生成に失敗しました: ')(e);
    $('result').innerHTML = '';
  } finally {
    $('generate').disabled = false;
    $('generate').textContent = '類題を作成 ✨';
  }
};

document.querySelectorAll('button.print').forEach(b => b.onclick = () => {
  const q = new URLSearchParams({ mode: b.dataset.mode, student: $('student').value,
                                  instructor: $('instructor').value, date: $('print-date').value });
  window.open('/print?' + q.toString(), '_blank');
});

async function refreshSheets() {
  const sheets = await api('/sheets');
  $('sheets').innerHTML = '';
  sheets.forEach(s => {
    const li = document.createElement('li');
    li.innerHTML = `<span class="label"></span> <button class="load">開く</button> <a href="/sheets/${s.id}/print" target="_blank">印刷</a> <button class="del">削除</button>`;
    li.querySelector('.label').textContent = `${s.title} (${s.date})`;
    li.querySelector('.load').onclick = () => api(`/sheets/${s.id}/load`, { method: 'POST' })
      .then(d => renderMarkdown($('result'), d.result)).catch(fail(''));
    li.querySelector('.del').onclick = () => api('/sheets/' + s.id, { method: 'DELETE' }).then(refreshSheets).catch(fail(''));
    $('sheets').appendChild(li);
  });
}
$('save-sheet').onclick = () => {
  const title = prompt('タイトル', '類題プリント');
  if (title === null) return;
  const fd = new FormData();
  fd.append('title', title); fd.append('date', $('print-date').value);
  api('/sheets', { method: 'POST', body: fd }).then(refreshSheets).catch(fail('保存に失敗しました: '));
};

$('print-date').value = new Date().toISOString().split('T')[0];
loadSettings().catch(fail(''));
refreshImages();
refreshSheets();
api('/result').then(d => { if (d.result) renderMarkdown($('result'), d.result); });
</script>
</body>
</html>
"""

RESULT_TEMPLATE = r"""<!doctype html>
<html lang="ja">
<head>
<title>%(title)s</title>
%(head)s
</head>
<body>
<section class="result" id="result"></section>
<script>
  const text = %(result_json)s;
  const target = document.getElementById('result');
  target.innerHTML = DOMPurify.sanitize(marked.parse(text));
  if (window.MathJax && window.MathJax.typesetPromise) {
    window.MathJax.typesetPromise([target]).catch((err) => console.log('MathJax render error:', err));
  }
</script>
</body>
</html>
"""


def index_page() -> str:
    return INDEX_TEMPLATE % {"head": _HEAD}


def _script_json(value: str) -> str:
    # keep "</script>" in model output from closing the tag
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def result_page(result: str, title: str = "結果") -> str:
    return RESULT_TEMPLATE % {
        "head": _HEAD,
        "title": html.escape(title),
        "result_json": _script_json(result or ""),
    }
