import logging

from flask import Flask, jsonify, redirect, render_template_string, request, url_for

import gem_settings
from bid_board import BidBoard, bid_card, clamp_requested
from gem_proxy import INTERNAL_ERROR_BODY, forward_search
from presets import DEFAULT_PRESET, PRESETS

logger = logging.getLogger("bid-viewer")

app = Flask(__name__)
board = BidBoard()

INDEX_HTML = """
<!DOCTYPE html>
<html>
<head>
  <title>GeM Ongoing Bids</title>
  {% if state.loading %}<meta http-equiv="refresh" content="2">{% endif %}
  <style>
    body { font-family: Arial; margin: 0 auto; max-width: 1400px; padding: 20px; }
    .controls { padding: 15px; background: #f7f7f7; border: 1px solid #ddd; }
    .grid { display: grid; grid-template-columns: repeat(3, 1fr); gap: 12px; margin-top: 15px; }
    .card { display: block; padding: 12px; border: 1px solid #ddd; color: #222; text-decoration: none; }
    .card.amendment { background: #fde2e2; border-color: #e57373; }
    .error { background: #fde2e2; border: 1px solid #e57373; padding: 10px; margin-top: 15px; }
    .empty { text-align: center; color: #777; padding: 40px; }
    small { display: block; color: #444; }
  </style>
</head>
<body>

<h2>GeM Ongoing Bids Search Results</h2>

<div class="controls">
  {% if state.loading %}
    <b>Loading {{ state.requested }} Bids</b> {{ state.progress }}
  {% else %}
    {% for key in presets %}
    <form method="post" action="{{ url_for('start_fetch', source=key) }}" style="display:inline">
      <input type="number" name="count" min="{{ min_results }}" max="{{ max_results }}"
             step="{{ step }}" value="{{ state.requested }}">
      <button type="submit">Fetch {{ state.requested }} Bids from {{ key|upper }}</button>
    </form>
    {% endfor %}
  {% endif %}
  <div>Displaying {{ state.count }} bids (Requested: {{ state.requested }})</div>
</div>

{% if state.error %}
  <div class="error"><b>Error</b><br>{{ state.error }}</div>
{% endif %}

{% if not state.loading and not cards and not state.error %}
  <div class="empty">No bids found for the current search parameters.</div>
{% endif %}

<div class="grid">
  {% for c in cards %}
    <a class="card{% if c.is_amendment %} amendment{% endif %}" href="{{ c.document_url }}"
       target="_blank" rel="noopener noreferrer">
      <b>{{ c.category }}</b>
      <small>Ministry: {{ c.ministry }}</small>
      <small>Department: {{ c.department }}</small>
      <small>Starting Date: {{ c.start_date }}</small>
      <small>Closing Date: {{ c.end_date }}</small>
      <small>Created By: {{ c.created_by }}</small>
      <small>Total Quantity: {{ c.total_quantity }}</small>
      <small>ID: {{ c.id }}</small>
      <small>ID Parent: {{ c.parent_id }}</small>
      <b>Bid Number: {{ c.bid_number }}</b>
    </a>
  {% endfor %}
</div>

</body>
</html>
"""


@app.route("/")
def index():
    state = board.snapshot()
    cards = [] if state["loading"] else [bid_card(doc) for doc in state["bids"]]
    return render_template_string(
        INDEX_HTML,
        state=state,
        cards=cards,
        presets=list(PRESETS),
        min_results=gem_settings.MIN_RESULTS,
        max_results=gem_settings.MAX_RESULTS,
        step=gem_settings.RESULTS_PER_PAGE,
    )


@app.route("/fetch/<source>", methods=["POST"])
def start_fetch(source):
    if source.lower() not in PRESETS:
        return jsonify({"message": f"Unknown source '{source}'"}), 404

    requested = clamp_requested(request.form.get("count", board.requested))
    board.fetch(source, requested)
    return redirect(url_for("index"))


@app.route("/api/bids")
def bids_state():
    return jsonify(board.snapshot())


# ---------- CORE: SEARCH PROXY ----------
@app.route("/api/search-bids", methods=["POST"])
def search_bids():
    try:
        search_params = request.get_json(force=True)
    except Exception as e:
        logger.exception("API Route Error: %s", e)
        return jsonify(INTERNAL_ERROR_BODY), 500

    body, status = forward_search(search_params)
    return jsonify(body), status
# ----------------------------------------


if __name__ == "__main__":
    logging.basicConfig(level=gem_settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(message)s")
    if gem_settings.AUTO_FETCH_ON_START:
        board.fetch(DEFAULT_PRESET, gem_settings.MIN_RESULTS)
    app.run(port=gem_settings.PORT, debug=True, use_reloader=False)
