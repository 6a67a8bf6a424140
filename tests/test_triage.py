import pytest

from recepcion.models import Analysis, Triage
from recepcion.triage import AnalysisClassifier, KeywordClassifier, TriageClassifier

ALTA = Triage(priority="Alta", label="Potencial cita", suggested_action="Derivar a equipo")
MEDIA = Triage(priority="Media", label="Potencial cita", suggested_action="Derivar a equipo")
BAJA = Triage(priority="Baja", label="Consulta", suggested_action="Automatico")


@pytest.mark.parametrize("text, expected", [
    ("Es URGENTE", ALTA),
    ("tengo una fractura", ALTA),
    ("¿Cuál es el precio?", MEDIA),
    ("quiero saber la disponibilidad", MEDIA),
    ("dolor y precio", ALTA),  # urgente gana
    ("Hola, buenas", BAJA),
])
def test_keywords(store, text, expected):
    assert KeywordClassifier().classify(store.create(), text) == expected


def test_keywords_mensaje_vacio(store):
    assert KeywordClassifier().classify(store.create(), "") is None


def test_analysis_sin_resultado(store):
    assert AnalysisClassifier().classify(store.create(), "hola", None) is None


def test_analysis_valores_fuera_de_rango_conservan_actual(store):
    session = store.create()
    session.triage = MEDIA
    result = AnalysisClassifier().classify(
        session, "hola", Analysis(priority="Critica", type="Consulta", suggested_action=None),
    )
    assert result == Triage(priority="Media", label="Consulta", suggested_action="Derivar a equipo")


def test_classifier_prefiere_analisis(store):
    session = store.create()
    result = TriageClassifier().classify(session, "urgente", Analysis(priority="Baja"))
    assert result == BAJA


def test_classifier_cae_al_fallback(store):
    assert TriageClassifier().classify(store.create(), "urgente", None) == ALTA


async def test_apply_pisa_y_anuncia(store, bus, recorder):
    session = store.create()
    bus.subscribe(session.id, recorder)

    result = await TriageClassifier().apply(bus, session, "necesito hora hoy")

    assert session.triage == ALTA == result
    assert recorder.frames == [{"event": "triage.updated", "data": ALTA.model_dump()}]


async def test_apply_sin_clasificacion_no_anuncia(store, bus, recorder):
    session = store.create()
    bus.subscribe(session.id, recorder)

    assert await TriageClassifier().apply(bus, session, "") is None
    assert recorder.frames == []
    assert session.triage == BAJA


def test_analysis_acepta_valores_sin_mayusculas(store):
    result = AnalysisClassifier().classify(
        store.create(), "hola",
        Analysis(priority="alta", type="POTENCIAL CITA", suggested_action=" derivar a equipo "),
    )
    assert result == Triage(priority="Alta", label="Potencial cita", suggested_action="Derivar a equipo")
