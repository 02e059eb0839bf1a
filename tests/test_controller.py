import pytest

from conftest import BASE_URL, description_html, offers_html, page, result_card, search_html
from offer_crawler.errors import ExtractionError, UnroutableWorkItemError
from offer_crawler.extractors.registry import ExtractorRegistry
from offer_crawler.pipeline.controller import PipelineController
from offer_crawler.pipeline.effects import Emit, EnqueueMany, EnqueueOne
from offer_crawler.pipeline.payload import ExtractedItem, Payload
from offer_crawler.pipeline.states import State


@pytest.fixture
def controller() -> PipelineController:
    return PipelineController(ExtractorRegistry().extractors, base_url=BASE_URL)


class StaticExtractor:
    name = "static"

    def __init__(self, value):
        self.value = value

    def extract(self, page):
        return self.value


class FailingExtractor:
    name = "failing"

    def extract(self, page):
        raise ExtractionError("layout changed")


def _description_payload(asin="B08X1"):
    return Payload(keyword="asus zenbook", asin=asin, itemUrl=f"{BASE_URL}/d/{asin}", title="Zenbook 14")


def test_seed_starts_in_search_state_with_only_the_keyword(controller):
    item = controller.seed("asus zenbook")

    assert item.label is State.SEARCH_KEYWORD
    assert item.payload == {"keyword": "asus zenbook"}
    assert item.url == f"{BASE_URL}/s?k=asus+zenbook"


def test_search_result_becomes_description_work_item(controller):
    html = search_html(result_card("B08X1", "Zenbook 14"))

    effect = controller.dispatch(State.SEARCH_KEYWORD, page(html), Payload(keyword="asus zenbook"))

    assert isinstance(effect, EnqueueMany)
    [item] = effect.items
    assert item.label is State.EXTRACT_DESCRIPTION
    assert item.url == f"{BASE_URL}/d/B08X1"
    assert item.payload["keyword"] == "asus zenbook"
    assert item.payload["asin"] == "B08X1"
    assert item.payload["itemUrl"] == f"{BASE_URL}/d/B08X1"
    assert item.payload["title"] == "Zenbook 14"


def test_search_fans_out_one_item_per_result(controller):
    asins = [f"A{i}" for i in range(7)]
    html = search_html(*(result_card(a, f"Product {a}") for a in asins))

    effect = controller.dispatch(State.SEARCH_KEYWORD, page(html), Payload(keyword="laptop"))

    assert len(effect.items) == len(asins)
    assert {i.payload["asin"] for i in effect.items} == set(asins)
    assert len({i.payload["itemUrl"] for i in effect.items}) == len(asins)
    assert all(i.payload["keyword"] == "laptop" for i in effect.items)


def test_search_dispatch_is_repeatable(controller):
    html = search_html(result_card("A1", "One"), result_card("A2", "Two"))
    search_page = page(html)
    payload = Payload(keyword="laptop")

    first = controller.dispatch(State.SEARCH_KEYWORD, search_page, payload)
    second = controller.dispatch(State.SEARCH_KEYWORD, search_page, payload)

    assert [i.to_dict() for i in first.items] == [i.to_dict() for i in second.items]
    assert payload == {"keyword": "laptop"}


def test_description_becomes_exactly_one_offers_item(controller):
    effect = controller.dispatch(
        State.EXTRACT_DESCRIPTION, page(description_html("Thin.")), _description_payload()
    )

    assert isinstance(effect, EnqueueOne)
    assert effect.item.label is State.EXTRACT_OFFERS
    assert effect.item.url == f"{BASE_URL}/gp/offer-listing/B08X1"
    assert effect.item.payload["productDescription"] == "<p>Thin.</p>"
    assert effect.item.payload["title"] == "Zenbook 14"


def test_absent_description_flows_through_as_none(controller):
    effect = controller.dispatch(State.EXTRACT_DESCRIPTION, page(description_html(None)), _description_payload())

    assert "productDescription" in effect.item.payload
    assert effect.item.payload["productDescription"] is None


def test_offers_emit_one_record_per_row_with_full_payload(controller):
    payload = _description_payload().merge(productDescription="<p>Thin.</p>")
    html = offers_html([("Seller A", "$999.00", ""), ("Seller B", "$989.00", "+ $5.99 shipping")])

    effect = controller.dispatch(State.EXTRACT_OFFERS, page(html), payload)

    assert isinstance(effect, Emit)
    records = [r.to_dict() for r in effect.records]
    assert len(records) == 2
    for record in records:
        for key, value in payload.items():
            assert record[key] == value
        assert record["description"] == "<p>Thin.</p>"
    assert records[0]["seller"] == "Seller A"
    assert records[0]["shipping"] == "free"
    assert records[1]["shipping"] == "+ $5.99 shipping"


def test_unknown_label_is_unroutable(controller):
    with pytest.raises(UnroutableWorkItemError):
        controller.dispatch("amz-write-out", page("<html></html>"), Payload(keyword="k"))


def test_every_state_needs_an_extractor():
    extractors = ExtractorRegistry().extractors
    del extractors[State.EXTRACT_OFFERS]

    with pytest.raises(ValueError, match="amz-extract-offers"):
        PipelineController(extractors)


def test_extractor_errors_propagate():
    failing = PipelineController({**ExtractorRegistry().extractors, State.SEARCH_KEYWORD: FailingExtractor()})

    with pytest.raises(ExtractionError):
        failing.dispatch(State.SEARCH_KEYWORD, page("<html></html>"), Payload(keyword="k"))


def test_extractors_are_injected():
    found = [ExtractedItem(asin="Z1", title="Injected", url="https://other/d/Z1")]
    extractors = {**ExtractorRegistry().extractors, State.SEARCH_KEYWORD: StaticExtractor(found)}

    effect = PipelineController(extractors).dispatch(State.SEARCH_KEYWORD, page("<html></html>"), Payload(keyword="k"))

    assert [i.url for i in effect.items] == ["https://other/d/Z1"]


def test_enqueued_labels_follow_the_state_table(controller):
    search = controller.dispatch(
        State.SEARCH_KEYWORD, page(search_html(result_card("B08X1", "Zenbook 14"))), Payload(keyword="asus zenbook")
    )
    description = controller.dispatch(State.EXTRACT_DESCRIPTION, page(description_html("Fast")), _description_payload())

    assert search.items[0].label is State.SEARCH_KEYWORD.next
    assert description.item.label is State.EXTRACT_DESCRIPTION.next
    assert State.EXTRACT_OFFERS.next is None
