from conftest import Recorder
from recepcion.events import EventBus
from recepcion.timeline import record


class Broken:
    async def send_json(self, data):
        raise ConnectionError("socket cerrado")


async def test_publish_llega_a_todos():
    bus, a, b = EventBus(), Recorder(), Recorder()
    bus.subscribe("s1", a)
    bus.subscribe("s1", b)
    bus.subscribe("s2", Recorder())

    await bus.publish("s1", "triage.updated", {"priority": "Alta"})

    expected = [{"event": "triage.updated", "data": {"priority": "Alta"}}]
    assert a.frames == expected
    assert b.frames == expected


async def test_publish_sin_suscriptores_no_falla():
    await EventBus().publish("nadie", "timeline.event", {})


async def test_suscriptor_caido_se_descarta():
    bus, ok = EventBus(), Recorder()
    bus.subscribe("s1", Broken())
    bus.subscribe("s1", ok)

    await bus.publish("s1", "timeline.event", {"n": 1})
    await bus.publish("s1", "timeline.event", {"n": 2})

    assert bus.count("s1") == 1
    assert [f["data"]["n"] for f in ok.frames] == [1, 2]


def test_unsubscribe_y_drop():
    bus, a, b = EventBus(), Recorder(), Recorder()
    bus.subscribe("s1", a)
    bus.subscribe("s1", b)
    bus.unsubscribe("s1", a)
    assert bus.count("s1") == 1
    assert bus.drop("s1") == 1
    assert bus.count("s1") == 0
    bus.unsubscribe("s1", b)


async def test_record_en_orden(store, bus, recorder):
    session = store.create()
    bus.subscribe(session.id, recorder)

    for label in ("uno", "dos", "tres"):
        await record(bus, session, "system", label)

    assert [e.label for e in session.timeline] == ["Sesion iniciada", "uno", "dos", "tres"]
    assert [f["data"]["label"] for f in recorder.frames] == ["uno", "dos", "tres"]
    assert all(f["event"] == "timeline.event" for f in recorder.frames)


async def test_record_agrega_antes_de_notificar(store, bus):
    session = store.create()
    seen = []

    class Observer:
        async def send_json(self, data):
            seen.append(session.timeline[-1].label)

    bus.subscribe(session.id, Observer())
    await record(bus, session, "patient", "Mensaje recibido")

    assert seen == ["Mensaje recibido"]
