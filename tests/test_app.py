from __future__ import annotations

from datetime import date, timedelta

from streamlit.testing.v1 import AppTest

import db
from models import Event


def test_home_page_renders_upcoming_events():
    tomorrow = (date.today() + timedelta(days=1)).isoformat()
    db.set_events([Event("1", "Conselho de Classe", "", tomorrow, "14:00")])

    at = AppTest.from_file("../app.py", default_timeout=30).run()

    assert not at.exception
    assert len(at.dataframe) == 1
    assert "Conselho de Classe" in at.dataframe[0].value["Título"].tolist()
