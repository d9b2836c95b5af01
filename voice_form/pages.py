"""
Pages HTML de test (enregistrement micro, formulaire, détection d'image)
"""

HTML_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>Voice to Form</title>
    <meta charset="utf-8">
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: Arial, sans-serif; background: #f5f5f5; padding: 20px; }
        .container { max-width: 900px; margin: 0 auto; background: white; padding: 30px; border-radius: 10px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }
        h1 { color: #333; margin-bottom: 20px; }
        .config { background: #f9f9f9; padding: 15px; border-radius: 5px; margin: 15px 0; }
        label { display: block; margin: 10px 0 5px; font-weight: bold; }
        select, input, textarea { width: 100%; padding: 8px; border: 1px solid #ddd; border-radius: 4px; }
        textarea { min-height: 60px; }
        button { background: #4CAF50; color: white; padding: 10px 25px; border: none; border-radius: 5px; cursor: pointer; margin: 5px 0; }
        button.recording { background: #ef4444; }
        button:disabled { background: #ccc; cursor: not-allowed; }
        #status { padding: 10px; margin: 10px 0; border-radius: 5px; text-align: center; }
        .error { background: #f8d7da; color: #721c24; }
        .drop { border: 2px dashed #ccc; border-radius: 8px; padding: 20px; text-align: center; cursor: pointer; }
        canvas { max-width: 100%; margin-top: 10px; }
    </style>
</head>
<body>
    <div class="container">
        <h1>🎙️ Voice to Form</h1>

        <div class="config">
            <label>Demo:</label>
            <select id="demo"></select>
            <label>Speech-to-text:</label>
            <select id="provider">
                <option value="gemini">Google Gemini</option>
                <option value="elevenlabs">ElevenLabs Scribe</option>
                <option value="deepgram">Deepgram Nova</option>
            </select>
            <label>API key for the selected provider (optional):</label>
            <input id="sttKey" type="password">
            <label>Google Gemini API key (optional):</label>
            <input id="googleKey" type="password">
        </div>

        <button id="record">Start recording</button>
        <div id="status"></div>
        <form id="form"></form>
    </div>

    <script>
        let demos = [];
        let recorder = null;
        let chunks = [];

        const status = (text, isError) => {
            const el = document.getElementById('status');
            el.textContent = text || '';
            el.className = isError ? 'error' : '';
        };

        // {error} du pipeline ou {detail} de FastAPI (400, 422)
        const errorText = result => {
            if (result.error) return result.error;
            if (Array.isArray(result.detail)) return result.detail.map(d => d.msg).join('; ');
            return String(result.detail);
        };

        async function loadDemos() {
            demos = await (await fetch('/demos')).json();
            const select = document.getElementById('demo');
            select.innerHTML = demos.map(d => `<option value="${d.id}">${d.icon} ${d.title}</option>`).join('');
            renderForm();
        }

        function renderForm() {
            const demo = demos.find(d => d.id === document.getElementById('demo').value) || demos[0];
            const form = document.getElementById('form');
            form.innerHTML = `<h2>${demo.form_title}</h2>` + demo.fields.map(f => {
                if (f.type === 'anomaly-detector') {
                    return `<label>${f.label}</label>
                        <div class="drop" id="drop">Drop an image here or click to upload
                            <input type="file" accept="image/*" id="image" style="display:none"></div>
                        <canvas id="canvas"></canvas>
                        <textarea name="${f.name}" placeholder="${f.placeholder}"></textarea>`;
                }
                const input = f.type === 'textarea'
                    ? `<textarea name="${f.name}" placeholder="${f.placeholder}"></textarea>`
                    : `<input name="${f.name}" placeholder="${f.placeholder}">`;
                return `<label>${f.label}</label>${input}`;
            }).join('');
            const drop = document.getElementById('drop');
            if (drop) {
                const file = document.getElementById('image');
                drop.onclick = () => file.click();
                drop.ondragover = e => e.preventDefault();
                drop.ondrop = e => { e.preventDefault(); detect(e.dataTransfer.files[0]); };
                file.onchange = e => detect(e.target.files[0]);
            }
        }

        async function toggleRecording() {
            const button = document.getElementById('record');
            if (recorder && recorder.state === 'recording') {
                recorder.stop();
                button.textContent = 'Start recording';
                button.className = '';
                return;
            }
            try {
                const stream = await navigator.mediaDevices.getUserMedia({
                    audio: { echoCancellation: true, noiseSuppression: true, autoGainControl: true }
                });
                const mimeType = MediaRecorder.isTypeSupported('audio/webm;codecs=opus') ? 'audio/webm;codecs=opus' : 'audio/webm';
                recorder = new MediaRecorder(stream, { mimeType });
                chunks = [];
                recorder.ondataavailable = e => chunks.push(e.data);
                recorder.onstop = () => {
                    stream.getTracks().forEach(t => t.stop());
                    send(new Blob(chunks, { type: mimeType }));
                };
                recorder.start();
                button.textContent = 'Stop recording';
                button.className = 'recording';
                status('Recording...');
            } catch (err) {
                status('Microphone permission denied', true);
            }
        }

        async function send(blob) {
            status('Processing...');
            const provider = document.getElementById('provider').value;
            const body = new FormData();
            body.append('audio', blob, 'audio.webm');
            body.append('stt_provider', provider);
            body.append('demo_id', document.getElementById('demo').value);
            const sttKey = document.getElementById('sttKey').value;
            const googleKey = document.getElementById('googleKey').value;
            // Gemini : une seule clé Google, celle du champ Google en priorité
            const keys = {};
            if (sttKey) keys[provider === 'gemini' ? 'google_key' : provider + '_key'] = sttKey;
            if (googleKey) keys.google_key = googleKey;
            Object.entries(keys).forEach(([name, value]) => body.append(name, value));

            const result = await (await fetch('/voice-to-form', { method: 'POST', body })).json();
            if (result.error || result.detail) { status(errorText(result), true); return; }
            const form = document.getElementById('form');
            Object.entries(result.data || {}).forEach(([name, value]) => {
                const el = form.elements.namedItem(name);
                if (el) el.value = value;
            });
            status(Object.keys(result.data || {}).length ? 'Form filled' : 'Nothing extracted');
        }

        function detect(file) {
            if (!file || !file.type.startsWith('image/')) { status('Please upload an image file', true); return; }
            const reader = new FileReader();
            reader.onload = e => {
                const img = new Image();
                img.onload = async () => {
                    status('Detecting anomalies...');
                    const result = await (await fetch('/detect-anomaly', {
                        method: 'POST',
                        headers: { 'Content-Type': 'application/json' },
                        body: JSON.stringify({
                            image: e.target.result, prompt: 'anomaly',
                            width: img.naturalWidth, height: img.naturalHeight
                        })
                    })).json();
                    if (result.error || result.detail) { status(errorText(result), true); return; }
                    const canvas = document.getElementById('canvas');
                    const ctx = canvas.getContext('2d');
                    canvas.width = img.naturalWidth;
                    canvas.height = img.naturalHeight;
                    ctx.drawImage(img, 0, 0);
                    ctx.strokeStyle = '#ef4444';
                    ctx.fillStyle = '#ef4444';
                    ctx.lineWidth = 3;
                    ctx.font = '16px sans-serif';
                    (result.boxes || []).forEach(b => {
                        ctx.strokeRect(b.x, b.y, b.width, b.height);
                        ctx.fillText(b.label, b.x + 4, Math.max(b.y - 6, 16));
                    });
                    document.querySelector('[name=imageAnomalyDetection]').value = result.summary;
                    status('');
                };
                img.src = e.target.result;
            };
            reader.readAsDataURL(file);
        }

        document.getElementById('demo').onchange = renderForm;
        document.getElementById('record').onclick = toggleRecording;
        loadDemos();
    </script>
</body>
</html>
"""


PASSWORD_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>Password required</title>
    <meta charset="utf-8">
    <style>
        body { font-family: Arial, sans-serif; background: #f5f5f5; display: flex; justify-content: center; padding-top: 100px; }
        .box { background: white; padding: 30px; border-radius: 10px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); width: 320px; }
        input { width: 100%; padding: 8px; margin: 10px 0; box-sizing: border-box; }
        button { background: #4CAF50; color: white; padding: 10px; border: none; border-radius: 5px; width: 100%; cursor: pointer; }
        #error { color: #721c24; margin-top: 10px; }
    </style>
</head>
<body>
    <form class="box" id="login">
        <h2>🔒 Password required</h2>
        <input type="password" id="password" autofocus>
        <button type="submit">Enter</button>
        <div id="error"></div>
    </form>
    <script>
        document.getElementById('login').onsubmit = async e => {
            e.preventDefault();
            const response = await fetch('/api/auth', {
                method: 'POST',
                headers: { 'Content-Type': 'application/json' },
                body: JSON.stringify({ password: document.getElementById('password').value })
            });
            const result = await response.json();
            if (result.success) { window.location.href = '/'; }
            else { document.getElementById('error').textContent = result.error; }
        };
    </script>
</body>
</html>
"""
