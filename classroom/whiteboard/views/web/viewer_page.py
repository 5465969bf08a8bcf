from __future__ import annotations


def _style_block() -> str:
    return """
    <style>
        * { box-sizing: border-box; }

        body {
            margin: 0;
            background: #f1f5f9;
            font-family: 'Segoe UI', Tahoma, sans-serif;
            min-height: 100vh;
            display: flex;
            flex-direction: column;
        }

        #toolbar {
            display: flex;
            gap: 8px;
            align-items: center;
            padding: 8px 12px;
            background: rgba(15, 23, 42, 0.08);
        }

        #toolbar button { padding: 6px 10px; border-radius: 6px; border: 1px solid #cbd5e1; background: #fff; cursor: pointer; }
        #toolbar button.active { background: #4f46e5; color: #fff; }
        #viewOnly { display: none; padding: 4px 10px; background: #fef9c3; color: #854d0e; border-radius: 6px; font-weight: 600; }
        #liveBadge { margin-left: auto; font-weight: 700; color: #64748b; }
        #liveBadge.live { color: #dc2626; }

        #boardSurface { position: relative; margin: 12px auto; }
        #boardPreview, #boardCanvas { position: absolute; top: 0; left: 0; }
        #boardCanvas { touch-action: none; cursor: crosshair; }
        #boardCanvas.readonly { cursor: default; }
    </style>
    """


def _script_block(board_width: int, board_height: int, refresh_ms: int) -> str:
    return f"""
    <script>
        (() => {{
            let boardSize = {{ width: {board_width}, height: {board_height} }};
            const refreshDelay = {refresh_ms};
            const params = new URLSearchParams(window.location.search);
            let participantId = params.get('participant_id') || localStorage.getItem('classroomParticipant') || '';
            if (!participantId) {{
                participantId = (window.prompt('Participant id') || '').trim();
            }}
            localStorage.setItem('classroomParticipant', participantId);

            let tool = 'pen';
            let readOnly = true;
            let points = [];
            let drawing = false;

            const previewImg = document.getElementById('boardPreview');
            const canvas = document.getElementById('boardCanvas');
            const surface = document.getElementById('boardSurface');
            const ctx = canvas.getContext('2d');
            const colorInput = document.getElementById('colorInput');
            const widthInput = document.getElementById('widthInput');
            const fileInput = document.getElementById('fileInput');
            const query = () => `participant_id=${{encodeURIComponent(participantId)}}`;

            function applySize() {{
                canvas.width = boardSize.width;
                canvas.height = boardSize.height;
                surface.style.width = `${{boardSize.width}}px`;
                surface.style.height = `${{boardSize.height}}px`;
            }}

            function post(url, body) {{
                return fetch(`${{url}}?${{query()}}`, {{
                    method: 'POST',
                    headers: {{ 'Content-Type': 'application/json' }},
                    body: JSON.stringify(body || {{}})
                }}).then(refreshPreview);
            }}

            function refreshPreview() {{
                previewImg.src = `/board.png?${{query()}}&t=${{Date.now()}}`;
            }}

            function syncStatus() {{
                fetch(`/api/status?${{query()}}`).then(r => r.json()).then(data => {{
                    readOnly = !!data.read_only;
                    document.getElementById('viewOnly').style.display = readOnly ? 'inline-block' : 'none';
                    document.querySelectorAll('.edit').forEach(el => el.style.display = readOnly ? 'none' : '');
                    canvas.classList.toggle('readonly', readOnly);
                    const badge = document.getElementById('liveBadge');
                    badge.textContent = data.live.is_live ? `LIVE - ${{data.live.mode}}` : 'Offline';
                    badge.classList.toggle('live', data.live.is_live);
                    if (data.board_size[0] !== boardSize.width || data.board_size[1] !== boardSize.height) {{
                        boardSize = {{ width: data.board_size[0], height: data.board_size[1] }};
                        applySize();
                    }}
                }}).catch(() => {{}});
            }}

            function localPoint(evt) {{
                const rect = canvas.getBoundingClientRect();
                return [evt.clientX - rect.left, evt.clientY - rect.top];
            }}

            function finishStroke() {{
                if (!drawing) return;
                drawing = false;
                ctx.clearRect(0, 0, canvas.width, canvas.height);
                if (points.length > 1) {{
                    post('/api/strokes', {{ points, tool, color: colorInput.value, width: Number(widthInput.value) }});
                }}
                points = [];
            }}

            canvas.addEventListener('pointerdown', (evt) => {{
                if (readOnly) return;
                drawing = true;
                points = [localPoint(evt)];
            }});
            canvas.addEventListener('pointermove', (evt) => {{
                if (!drawing || readOnly) return;
                const next = localPoint(evt);
                const last = points[points.length - 1];
                points.push(next);
                const base = Number(widthInput.value);
                ctx.lineCap = 'round';
                ctx.lineJoin = 'round';
                ctx.lineWidth = tool === 'eraser' ? base * 6 : base;
                ctx.strokeStyle = tool === 'eraser' ? '#ffffff' : colorInput.value;
                ctx.beginPath();
                ctx.moveTo(last[0], last[1]);
                ctx.lineTo(next[0], next[1]);
                ctx.stroke();
            }});
            canvas.addEventListener('pointerup', finishStroke);
            canvas.addEventListener('pointerleave', finishStroke);

            document.getElementById('penBtn').addEventListener('click', () => setTool('pen'));
            document.getElementById('eraserBtn').addEventListener('click', () => setTool('eraser'));
            document.getElementById('clearBtn').addEventListener('click', () => post('/api/clear'));
            document.getElementById('imageBtn').addEventListener('click', () => fileInput.click());
            document.getElementById('raiseBtn').addEventListener('click', () => post('/api/live/raise'));
            fileInput.addEventListener('change', () => {{
                const file = fileInput.files[0];
                if (!file) return;
                const form = new FormData();
                form.append('file', file);
                fetch(`/api/images/insert?${{query()}}`, {{ method: 'POST', body: form }}).then(refreshPreview);
                fileInput.value = '';
            }});

            function setTool(value) {{
                tool = value;
                document.getElementById('penBtn').classList.toggle('active', tool === 'pen');
                document.getElementById('eraserBtn').classList.toggle('active', tool === 'eraser');
            }}

            applySize();
            setTool('pen');
            syncStatus();
            refreshPreview();
            setInterval(() => {{ syncStatus(); if (!drawing) refreshPreview(); }}, refreshDelay);
        }})();
    </script>
    """


def build_viewer_page(board_size: tuple[int, int], refresh_ms: int) -> str:
    width, height = board_size
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset='utf-8'>
        <title>Live Classroom</title>
        {_style_block()}
    </head>
    <body>
        <div id="toolbar">
            <button id="penBtn" class="edit">Pen</button>
            <button id="eraserBtn" class="edit">Eraser</button>
            <input type="color" id="colorInput" class="edit" value="#000000" title="Color" />
            <input type="range" id="widthInput" class="edit" min="1" max="20" value="2" title="Size" />
            <button id="imageBtn" class="edit">Insert Image</button>
            <input type="file" id="fileInput" accept="image/*" style="display:none" />
            <button id="clearBtn" class="edit">Clear All</button>
            <span id="viewOnly">View Only</span>
            <button id="raiseBtn">Raise Hand</button>
            <span id="liveBadge">Offline</span>
        </div>
        <div id="boardSurface">
            <img id="boardPreview" alt="Whiteboard" />
            <canvas id="boardCanvas" width="{width}" height="{height}"></canvas>
        </div>
        {_script_block(width, height, refresh_ms)}
    </body>
    </html>
    """
