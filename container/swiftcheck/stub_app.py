from flask import Flask, jsonify, render_template_string, request
import re
import socket
import os

app = Flask(__name__)

HAL = "්"

# Independent vowels, used at the start of a word or after another vowel
VOWELS = {
    "a": "අ", "aa": "ආ", "ae": "ඇ", "aae": "ඈ", "i": "ඉ", "ii": "ඊ",
    "u": "උ", "uu": "ඌ", "e": "එ", "ee": "ඒ", "ai": "ඓ",
    "o": "ඔ", "oo": "ඕ", "au": "ඖ",
}

# Dependent vowel signs; a bare consonant already carries the inherent "a"
VOWEL_SIGNS = {
    "a": "", "aa": "ා", "ae": "ැ", "aae": "ෑ", "i": "ි", "ii": "ී",
    "u": "ු", "uu": "ූ", "e": "ෙ", "ee": "ේ", "ai": "ෛ",
    "o": "ො", "oo": "ෝ", "au": "ෞ",
}

CONSONANTS = {
    "k": "ක", "kh": "ඛ", "g": "ග", "gh": "ඝ", "ng": "ඟ", "ch": "ච",
    "j": "ජ", "t": "ට", "th": "ත", "d": "ඩ", "dh": "ද", "n": "න",
    "p": "ප", "b": "බ", "m": "ම", "y": "ය", "r": "ර", "l": "ල",
    "v": "ව", "w": "ව", "s": "ස", "sh": "ශ", "h": "හ", "f": "ෆ",
    "z": "ස",
}

# Unit and abbreviation tokens that stay in Latin script
VERBATIM_WORDS = {"kg", "km", "cm", "ml", "ok"}

_WORD_RE = re.compile(r"[A-Za-z]+")


def _longest_match(word, pos, table):
    for size in (3, 2, 1):
        chunk = word[pos:pos + size]
        if len(chunk) == size and chunk in table:
            return chunk
    return None


def transliterate_word(word):
    out = []
    pos = 0
    while pos < len(word):
        consonant = _longest_match(word, pos, CONSONANTS)
        if consonant:
            pos += len(consonant)
            sign = _longest_match(word, pos, VOWEL_SIGNS)
            if sign is None:
                out.append(CONSONANTS[consonant] + HAL)
            else:
                out.append(CONSONANTS[consonant] + VOWEL_SIGNS[sign])
                pos += len(sign)
            continue
        vowel = _longest_match(word, pos, VOWELS)
        if vowel:
            out.append(VOWELS[vowel])
            pos += len(vowel)
        else:
            out.append(word[pos])
            pos += 1
    return "".join(out)


def transliterate(text):
    """
    Rough romanized-Sinhala to Sinhala conversion.

    Words containing an uppercase letter are treated as loanwords or
    abbreviations and kept as typed, as are digits, punctuation and whitespace.
    """
    def _replace(match):
        word = match.group(0)
        if word != word.lower() or word in VERBATIM_WORDS:
            return word
        return transliterate_word(word)

    return _WORD_RE.sub(_replace, text)


PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>Stub transliterator</title></head>
<body>
  <div id="app">
  {% if layout == "extra" %}<textarea rows="2"></textarea>{% endif %}
  {% if layout == "generic" %}
  <textarea id="source" rows="6"></textarea>
  <textarea id="target" rows="6" readonly></textarea>
  {% elif layout != "late" %}
  <textarea id="source" rows="6" placeholder="Type here in Singlish..."></textarea>
  <textarea id="target" rows="6" placeholder="Sinhala Unicode output" readonly></textarea>
  {% endif %}
  {% if layout == "extra" %}<textarea rows="2"></textarea>{% endif %}
  </div>
  <script>
    const debounceMs = {{ debounce }};
    const stall = {{ "true" if stall else "false" }};
    const keep = {{ "true" if keep else "false" }};
    const late = {{ "true" if layout == "late" else "false" }};
    const renderDelayMs = {{ render_delay }};
    let timer = null;

    function addControl(id, placeholder, readonly) {
      const el = document.createElement("textarea");
      el.id = id;
      el.rows = 6;
      el.placeholder = placeholder;
      el.readOnly = readonly;
      document.getElementById("app").appendChild(el);
    }

    function wire() {
      const source = document.getElementById("source");
      const target = document.getElementById("target");
      source.addEventListener("input", () => {
        clearTimeout(timer);
        const text = source.value;
        if (text === "") {
          if (!keep) { target.value = ""; }
          return;
        }
        if (stall) { return; }
        timer = setTimeout(async () => {
          const resp = await fetch("/api/transliterate", {
            method: "POST",
            headers: {"Content-Type": "application/json"},
            body: JSON.stringify({text: text})
          });
          const data = await resp.json();
          // drop responses for text that has since changed
          if (source.value === text) { target.value = data.output; }
        }, debounceMs);
      });
    }

    if (late) {
      // controls only exist once the client-side render runs, after the load event
      window.addEventListener("load", () => setTimeout(() => {
        addControl("source", "Type here in Singlish...", false);
        addControl("target", "Sinhala Unicode output", true);
        wire();
      }, renderDelayMs));
    } else {
      wire();
    }
  </script>
</body>
</html>
"""

LAYOUTS = ("hinted", "generic", "extra", "late")


def _int_arg(name, default):
    return max(int(request.args.get(name, default)), 0)


@app.route("/", methods=["GET"])
def index():
    """
    Serve a two-textarea page that converts its input after a debounce delay.

    Query args: layout=hinted|generic|extra|late, debounce=<ms>, render_delay=<ms>
    (late layout only), stall=1, keep=1
    """
    layout = request.args.get("layout", "hinted")
    if layout not in LAYOUTS:
        return jsonify({"error": f"unknown layout: {layout}"}), 400
    try:
        debounce = _int_arg("debounce", 150)
        render_delay = _int_arg("render_delay", 500)
    except ValueError:
        return jsonify({"error": "debounce and render_delay must be integers"}), 400
    return render_template_string(
        PAGE,
        layout=layout,
        debounce=debounce,
        render_delay=render_delay,
        stall=request.args.get("stall") == "1",
        keep=request.args.get("keep") == "1",
    )


@app.route("/api/transliterate", methods=["POST"])
def api_transliterate():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not isinstance(payload.get("text"), str):
        return jsonify({"error": "expected JSON body with a 'text' string"}), 400
    return jsonify({"output": transliterate(payload["text"])})


@app.route("/healthz", methods=["GET"])
def healthz():
    info = {
        "status": "ok",
        "service_env": {
            "K_SERVICE": os.environ.get("K_SERVICE"),
            "K_REVISION": os.environ.get("K_REVISION"),
            "HOSTNAME": socket.gethostname()
        },
    }
    return jsonify(info), 200


if __name__ == "__main__":
    # local debug
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 8080)))
