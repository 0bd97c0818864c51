from boutique.payments import cart
from boutique.payments.metadata import extract_metadata_from_session, session_from_event


def test_extract_metadata_roundtrip_for_chunked_cart():
    raw = [{"id": f"product-{i:04d}", "price": "9.99", "quantity": i + 1} for i in range(40)]
    meta = cart.make_metadata("u1", "GIFTAAAAAA", cart.validate_lines(raw))
    user_id, code, products = extract_metadata_from_session({"id": "cs_1", "metadata": meta})
    assert (user_id, code) == ("u1", "GIFTAAAAAA")
    assert [p["id"] for p in products] == [r["id"] for r in raw]
    assert products[5] == {"id": "product-0005", "quantity": 6, "price": 9.99}

def test_extract_metadata_unreadable_products():
    session = {"id": "cs_1", "metadata": {"userId": "u1", "couponCode": "", "products": "{pas du json"}}
    assert extract_metadata_from_session(session) == ("u1", "", None)

def test_extract_metadata_missing_chunk():
    session = {"metadata": {"userId": "u1", "products_chunks": "3", "products_0": "[", "products_1": "]"}}
    assert extract_metadata_from_session(session)[2] is None

def test_extract_metadata_empty_session():
    assert extract_metadata_from_session({}) == ("", "", None)
    assert extract_metadata_from_session(None) == ("", "", None)

def test_session_from_event():
    event = {"type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}}
    assert session_from_event(event) == {"id": "cs_1"}
    assert session_from_event({}) == {}
