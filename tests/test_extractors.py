import pytest

from conftest import (
    BASE_URL,
    CAPTCHA_HTML,
    description_html,
    offers_html,
    page,
    result_card,
    search_html,
)
from offer_crawler.errors import BlockedPageError, ExtractionError
from offer_crawler.extractors.amazon import (
    DescriptionExtractor,
    OfferExtractor,
    OfferSelectors,
    SearchExtractor,
)
from offer_crawler.pipeline.payload import ExtractedItem, OfferRow


def test_search_reads_title_anchor_not_image_anchor():
    html = search_html(result_card("B08X1", "Zenbook 14"))

    items = SearchExtractor().extract(page(html))

    assert items == [ExtractedItem(asin="B08X1", title="Zenbook 14", url=f"{BASE_URL}/d/B08X1")]


def test_search_skips_placeholders_duplicates_and_cards_without_title():
    html = search_html(
        '<div data-asin="" class="s-widget"><h2><a class="a-link-normal" href="/ad">Ad</a></h2></div>',
        result_card("A1", "First"),
        result_card("A1", "First again"),
        '<div data-asin="A2"><span>No title link</span></div>',
        result_card("A3", "Third"),
    )

    items = SearchExtractor().extract(page(html))

    assert [i.asin for i in items] == ["A1", "A3"]
    assert items[0].title == "First"


def test_search_with_no_results_returns_empty_list():
    assert SearchExtractor().extract(page(search_html())) == []


def test_search_without_results_root_is_an_extraction_error():
    with pytest.raises(ExtractionError) as exc:
        SearchExtractor().extract(page("<html><body><p>Something else</p></body></html>"))
    assert exc.value.selector == "div.s-main-slot"


def test_every_extractor_flags_bot_wall():
    captcha = page(CAPTCHA_HTML)
    for extractor in (SearchExtractor(), DescriptionExtractor(), OfferExtractor()):
        with pytest.raises(BlockedPageError):
            extractor.extract(captcha)


def test_description_returns_inner_markup():
    assert DescriptionExtractor().extract(page(description_html("Thin and light."))) == "<p>Thin and light.</p>"


def test_missing_description_is_none_not_an_error():
    assert DescriptionExtractor().extract(page(description_html(None))) is None


def test_offers_default_empty_shipping_to_free():
    html = offers_html([("Seller A", "$999.00", ""), ("Seller B", "$989.00", "+ $5.99 shipping")])

    offers = OfferExtractor().extract(page(html))

    assert offers == [
        OfferRow(seller="Seller A", price="$999.00", shipping="free"),
        OfferRow(seller="Seller B", price="$989.00", shipping="+ $5.99 shipping"),
    ]


def test_offer_without_shipping_element_ships_free_and_logo_seller_uses_alt():
    html = (
        '<div id="olpOfferList"><div class="olpOffer">'
        '<span class="olpOfferPrice">$10.00</span>'
        '<h3 class="olpSellerName"><img alt="Amazon.com" src="logo.png"></h3>'
        "</div></div>"
    )

    offers = OfferExtractor().extract(page(html))

    assert offers == [OfferRow(seller="Amazon.com", price="$10.00", shipping="free")]


def test_offer_row_without_price_is_an_extraction_error():
    html = '<div id="olpOfferList"><div class="olpOffer"><span class="olpSellerName">S</span></div></div>'
    with pytest.raises(ExtractionError):
        OfferExtractor().extract(page(html))


def test_missing_offer_list_is_an_extraction_error():
    with pytest.raises(ExtractionError):
        OfferExtractor().extract(page("<html><body></body></html>"))


def test_offer_selectors_are_swappable():
    html = '<ul id="offers"><li class="o"><b class="p">$1</b><i class="s">Shop</i></li></ul>'
    selectors = OfferSelectors(offer_list="#offers", row="li.o", seller=".s", price=".p", shipping=".ship")

    assert OfferExtractor(selectors).extract(page(html)) == [OfferRow(seller="Shop", price="$1", shipping="free")]
