import base64
import xml.etree.ElementTree as ET

from pack_registry.access import AccessPolicy, FeatureGate
from pack_registry.digest import digest_bytes
from pack_registry.routes import create_app

JAR_URL = "/acme/~maven/org/acme/demo/1.0/demo-1.0.jar"
JAR = b"PK\x03\x04 jar payload" * 100


def _auth(user):
    token = base64.b64encode(f"{user}:secret".encode()).decode()
    return {"Authorization": f"Basic {token}"}


class DenyAll(AccessPolicy):
    def can_read(self, project, user):
        return False

    def can_write(self, project, user):
        return False


def test_upload_and_download(client, app):
    resp = client.put(JAR_URL, data=JAR, headers={**_auth("alice"), "X-Build-Id": "42"})
    assert resp.status_code == 201

    resp = client.get(JAR_URL)
    assert resp.status_code == 200
    assert resp.data == JAR
    assert resp.headers["Content-Type"] == "application/java-archive"
    assert int(resp.headers["Content-Length"]) == len(JAR)
    assert "Last-Modified" in resp.headers

    packs = client.get("/acme/~packs").get_json()["packs"]
    assert packs[0]["user"] == "alice"
    assert packs[0]["buildId"] == 42


def test_invalid_build_id(client):
    resp = client.put(JAR_URL, data=JAR, headers={"X-Build-Id": "latest"})
    assert resp.status_code == 400


def test_head(client):
    assert client.head(JAR_URL).status_code == 404

    client.put(JAR_URL, data=JAR)
    resp = client.head(JAR_URL)
    assert resp.status_code == 200
    assert resp.data == b""
    assert "Last-Modified" in resp.headers


def test_checksums(client):
    client.put(JAR_URL, data=JAR)

    resp = client.get(JAR_URL + ".sha1")
    assert resp.status_code == 200
    assert resp.mimetype == "text/plain"
    assert resp.get_data(as_text=True) == digest_bytes(JAR, "sha1")

    assert client.put(JAR_URL + ".sha1", data=digest_bytes(JAR, "sha1")).status_code == 200
    assert client.put(JAR_URL + ".md5", data=digest_bytes(JAR, "md5")).status_code == 200

    resp = client.put(JAR_URL + ".sha256", data="0" * 64)
    assert resp.status_code == 400
    assert resp.get_data(as_text=True) == "Checksum verification failed"

    assert client.put(JAR_URL + ".sha512", data="f" * 1000).status_code == 413


def test_not_found(client):
    resp = client.get(JAR_URL)
    assert resp.status_code == 404
    assert resp.get_data(as_text=True) == "Unknown GAV"


def test_malformed_paths(client):
    assert client.get("/acme/~maven/demo-1.0.jar").status_code == 400
    assert client.get("/acme/~maven/demo/1.0/demo-1.0.jar").status_code == 400
    assert client.get("/ac$me/~maven/org/acme/demo/1.0/demo-1.0.jar").status_code == 400


def test_metadata_document(client, events):
    for version in ("1.0", "1.1-SNAPSHOT", "1.2"):
        url = f"/acme/~maven/org/acme/demo/{version}/demo-{version}.jar"
        assert client.put(url, data=version.encode()).status_code == 201

    resp = client.get("/acme/~maven/org/acme/demo/maven-metadata.xml")
    assert resp.status_code == 200
    assert resp.mimetype == "application/xml"
    root = ET.fromstring(resp.data)
    assert root.findtext("groupId") == "org.acme"
    assert root.findtext("artifactId") == "demo"
    assert root.findtext("versioning/latest") == "1.2"
    assert root.findtext("versioning/release") == "1.2"
    assert len(root.findtext("versioning/lastUpdated")) == 14
    assert [v.text for v in root.findall("versioning/versions/version")] == ["1.0", "1.1-SNAPSHOT", "1.2"]

    resp = client.get("/acme/~maven/org/acme/demo/maven-metadata.xml.md5")
    assert resp.get_data(as_text=True) == digest_bytes(
        client.get("/acme/~maven/org/acme/demo/maven-metadata.xml").data, "md5"
    )

    resp = client.head("/acme/~maven/org/acme/demo/maven-metadata.xml")
    assert resp.status_code == 200
    assert "Last-Modified" in resp.headers

    assert client.put("/acme/~maven/org/acme/demo/maven-metadata.xml", data=b"<metadata/>").status_code == 200
    assert [event.pack.version for event in events] == ["1.2"]


def test_corrupted_blob_returns_not_found(client, app):
    client.put(JAR_URL, data=JAR)
    store = app.extensions["pack_registry"].store
    blob = store.get("acme", digest_bytes(JAR))
    store.path_of(blob).write_bytes(b"truncated")

    assert client.get(JAR_URL).status_code == 404
    assert store.get("acme", blob.sha256) is None

    assert client.put(JAR_URL, data=JAR).status_code == 201
    assert client.get(JAR_URL).data == JAR


def test_state_survives_restart(cfg, client):
    client.put(JAR_URL, data=JAR)

    restarted = create_app(cfg).test_client()
    assert restarted.get(JAR_URL).data == JAR


def test_subscription_inactive(cfg):
    client = create_app(cfg, gate=FeatureGate(subscription_active=False)).test_client()
    resp = client.get(JAR_URL)
    assert resp.status_code == 406
    assert "subscription" in resp.get_data(as_text=True)


def test_project_not_enabled(cfg):
    client = create_app(cfg, gate=FeatureGate(enabled_projects=["other"])).test_client()
    resp = client.put(JAR_URL, data=JAR)
    assert resp.status_code == 406
    assert resp.get_data(as_text=True) == "Package management not enabled for project 'acme'"


def test_permission_denied(cfg):
    client = create_app(cfg, access=DenyAll()).test_client()
    assert client.get(JAR_URL).status_code == 401
    assert client.get(JAR_URL, headers=_auth("bob")).status_code == 403
    assert client.get("/acme/~packs", headers=_auth("bob")).status_code == 403


def test_read_only_project(cfg):
    cfg.READ_ONLY_PROJECTS = frozenset({"acme"})
    client = create_app(cfg).test_client()
    assert client.put(JAR_URL, data=JAR).status_code == 401
    assert client.put(JAR_URL, data=JAR, headers=_auth("bob")).status_code == 403
    assert client.get(JAR_URL).status_code == 404


def test_list_packs_by_type(client):
    client.put(JAR_URL, data=JAR)
    resp = client.get("/acme/~packs?type=Maven")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["project"] == "acme"
    assert [t["type"] for t in data["types"]] == ["Maven", "RubyGems"]
    assert data["types"][0] == {"type": "Maven", "order": 200, "icon": "maven", "separator": ">"}
    assert [p["reference"] for p in data["packs"]] == ["org.acme:demo:1.0"]

    assert client.get("/acme/~packs?type=RubyGems").get_json()["packs"] == []
    assert client.get("/acme/~packs?type=Cargo").status_code == 400


def test_version_check(client):
    resp = client.get("/acme/~maven/")
    assert resp.status_code == 200
    assert resp.data == b""

    assert client.get("/.acme/~maven/").status_code == 400


def test_version_check_requires_subscription(cfg):
    client = create_app(cfg, gate=FeatureGate(subscription_active=False)).test_client()
    assert client.get("/acme/~maven/").status_code == 406


def test_build_metadata_version(client):
    url = "/acme/~maven/org/acme/demo/1.0.0+build.5/demo-1.0.0+build.5.jar"
    assert client.put(url, data=JAR).status_code == 201
    assert client.get(url).data == JAR

    root = ET.fromstring(client.get("/acme/~maven/org/acme/demo/maven-metadata.xml").data)
    assert root.findtext("versioning/latest") == "1.0.0+build.5"


def test_build_id_header_ignored_on_reads(client):
    client.put(JAR_URL, data=JAR, headers={"X-Build-Id": "7"})

    assert client.get(JAR_URL, headers={"X-Build-Id": "latest"}).status_code == 200
    assert client.head(JAR_URL, headers={"X-Build-Id": "latest"}).status_code == 200
    assert client.get("/acme/~packs").get_json()["packs"][0]["buildId"] == 7
