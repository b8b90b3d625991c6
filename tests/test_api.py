import base64
import json

from core.usv_convert.service import RECORD_SEP as RS
from core.usv_convert.service import UNIT_SEP as US


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}


def test_csv_to_usv_endpoint_standard(client):
    payload = {
        "content": 'name,quote\nann,"a, b"\n',
        "filename": "people.csv",
        "response_level": "standard",
    }

    r = client.post("/v0/csv-to-usv", json=payload)
    assert r.status_code == 200

    data = r.json()
    assert data["result"]["content"] == f"name{US}quote{RS}ann{US}a, b"
    assert data["result"]["statistics_before"] == {"rows": 2, "columns": 2, "characters": 22}
    # standard では table は返さない
    assert "table" not in data["result"]
    assert data["meta"]["suggested_filename"] == "people.usv"
    assert data["meta"]["summary"] == "CSV → USV: 2 rows, 2 columns converted"


def test_usv_to_csv_endpoint_base64(client):
    usv = f"a{US}b,c{RS}d{US}e"
    payload = {"content_b64": base64.b64encode(usv.encode("utf-8")).decode("ascii")}

    r = client.post("/v0/usv-to-csv", json=payload)
    assert r.status_code == 200
    assert r.json()["result"] == {"content": 'a,"b,c"\nd,e'}


def test_unterminated_quote_returns_error_envelope(client):
    r = client.post("/v0/csv-to-usv", json={"content": 'a,"unterminated'})
    assert r.status_code == 422

    body = r.json()
    assert body["error"]["code"] == "UNTERMINATED_QUOTE"
    assert body["error"]["line"] == 1
    assert body["error"]["message"].startswith("CSV parsing failed: Unclosed quote at line 1")
    assert body["meta"] == {"version": "0.1.0"}


def test_not_usv_format_error(client):
    r = client.post("/v0/usv-to-csv", json={"content": "plain text with no separators"})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "NOT_USV_FORMAT"


def test_empty_input_error(client):
    r = client.post("/v0/csv-to-usv", json={"content": "   "})
    assert r.status_code == 422
    assert r.json()["error"] == {
        "code": "EMPTY_INPUT",
        "message": "Input file is empty. Please provide CSV content.",
    }


def test_invalid_base64(client):
    r = client.post("/v0/csv-to-usv", json={"content_b64": "!!!"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_BASE64"


def test_missing_content_is_a_validation_error(client):
    r = client.post("/v0/csv-to-usv", json={"filename": "x.csv"})
    assert r.status_code == 422
    assert "error" not in r.json()


def test_statistics_endpoint_degrades_instead_of_failing(client):
    r = client.post("/v0/statistics", json={"content": 'a,"open', "format": "csv"})
    assert r.status_code == 200
    assert r.json()["result"] == {"rows": 0, "columns": 0, "characters": 7}

    r = client.post("/v0/statistics", json={"content": f"a{US}b{US}c{RS}d", "format": "usv"})
    assert r.json()["result"] == {"rows": 2, "columns": 3, "characters": 7}


def test_lambda_handler_strips_stage_and_logs_diag(capsys):
    from backend.fastapi_app.lambda_handler import handler

    event = {
        "version": "2.0",
        "routeKey": "$default",
        "rawPath": "/dev/health",
        "rawQueryString": "",
        "headers": {"host": "example.execute-api.local", "x-forwarded-proto": "https"},
        "requestContext": {
            "stage": "dev",
            "http": {
                "method": "GET",
                "path": "/dev/health",
                "protocol": "HTTP/1.1",
                "sourceIp": "127.0.0.1",
                "userAgent": "pytest",
            },
        },
        "isBase64Encoded": False,
    }

    response = handler(event, None)

    assert response["statusCode"] == 200
    assert json.loads(response["body"]) == {"status": "healthy"}

    diag = json.loads(capsys.readouterr().out.strip().splitlines()[0])
    assert diag["diag"] == "incoming_request"
    assert diag["stage"] == "dev"
    assert diag["rawPath"] == "/dev/health"
    assert diag["bodyLength"] == 0
