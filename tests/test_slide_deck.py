from datetime import date

from hv_maintenance import schemas
from hv_maintenance.constants import MUNICIPALITIES
from hv_maintenance.utils import slide_deck


def _record(repo, stages, **fields):
    repo.create({"municipality_id": "m5", "technician": "Ana", "date": "2024-02-20", "stages": stages, **fields})


def test_record_without_stages_gives_cover_and_overview(repo):
    _record(repo, [])
    deck = slide_deck.to_slides(repo.snapshot(), MUNICIPALITIES, generated_on=date(2024, 3, 1))

    assert [s.kind for s in deck.slides] == ["cover", "overview"]
    assert deck.slides[0].record_count == 1
    assert "01/03/2024" in deck.slides[0].subtitle
    assert deck.slides[1].municipality == "Tefé"


def test_one_slide_per_stage(repo):
    _record(repo, [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}])
    deck = slide_deck.to_slides(repo.snapshot(), MUNICIPALITIES)

    assert [s.kind for s in deck.slides] == ["cover", "overview", "stage", "stage"]
    assert [s.stage_id for s in deck.slides[2:]] == ["a", "b"]


def test_placeholders_keep_fixed_positions(repo, png_bytes):
    _record(repo, [{"id": "a", "name": "A", "before": {"data": png_bytes, "mime_type": "image/png"}}])
    stage = slide_deck.to_slides(repo.snapshot(), MUNICIPALITIES).slides[-1]

    assert [p.slot for p in stage.placeholders] == list(schemas.EVIDENCE_SLOTS)
    assert [p.is_pending for p in stage.placeholders] == [False, True, True]
    assert [p.label for p in stage.placeholders] == ["Before", "During", "After"]
    xs = [p.box.x for p in stage.placeholders]
    assert xs == sorted(xs)
    assert stage.placeholders[0].box == slide_deck.PLACEHOLDER_BOXES[schemas.EvidenceSlot.BEFORE]


def test_placeholder_boxes_fit_the_slide():
    for box in slide_deck.PLACEHOLDER_BOXES.values():
        assert box.x + box.w <= slide_deck.SLIDE_WIDTH
        assert box.y + box.h <= slide_deck.SLIDE_HEIGHT


def test_skipped_record_is_not_counted(repo):
    _record(repo, [{"id": "a", "name": "A"}])
    _record(repo, [])
    newest, older = repo.snapshot()
    broken = older.model_copy(update={"id": "rec-broken", "stages": None})

    deck = slide_deck.to_slides([newest, broken], MUNICIPALITIES)
    assert deck.skipped_record_ids == ["rec-broken"]
    assert deck.slides[0].record_count == 1
    assert [s.kind for s in deck.slides] == ["cover", "overview"]


def test_render_pdf(repo, png_bytes):
    _record(repo, [
        {"id": "a", "name": "Inspeção", "description": "Isoladores com fuligem & <sujeira>",
         "before": {"data": png_bytes, "mime_type": "image/png"}},
        {"id": "b", "name": "Execução", "during": {"data": b"not an image"}},
    ])
    deck = slide_deck.to_slides(repo.snapshot(), MUNICIPALITIES)
    content = slide_deck.render_slide_deck(deck)

    assert content.startswith(b"%PDF")
    assert b"/Count 4" in content


def test_empty_deck_still_has_cover():
    deck = slide_deck.to_slides([], MUNICIPALITIES)
    assert len(deck.slides) == 1
    assert deck.slides[0].record_count == 0
    assert slide_deck.render_slide_deck(deck).startswith(b"%PDF")
