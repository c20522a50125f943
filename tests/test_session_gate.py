import pytest

from app.config import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from app.models import ROLE_HOME_PATHS, Identity, Profile, UserRole, home_path_for
from app.session_gate import (
    ZONE_REQUIRED_ROLE,
    GateAction,
    Zone,
    evaluate_request,
    is_ungated,
    zone_for_path,
)

PROTECTED_PATHS = ["/dashboard", "/dashboard/appointments", "/superadmin", "/admin-clinical/doctors", "/settings"]
AUTH_PATHS = ["/login", "/signup", "/forgot-password", "/request-account"]


def make_profile(role=UserRole.DOCTOR, **fields) -> Profile:
    return Profile(id="profile-1", user_id="user-1", role=role, **fields)


IDENTITY = Identity(id="user-1", email="doc@example.com")


# ============================================================================
# evaluate_request
# ============================================================================


class TestEvaluateRequest:
    @pytest.mark.parametrize("path", PROTECTED_PATHS)
    def test_no_identity_on_protected_path_goes_to_login(self, path):
        decision = evaluate_request(path, None, None)
        assert decision.action == GateAction.LOGIN
        assert decision.location == "/login"

    @pytest.mark.parametrize("path", AUTH_PATHS + ["/change-password", "/", "/book/dr-jane-ab12"])
    def test_no_identity_on_auth_or_public_path_is_allowed(self, path):
        assert evaluate_request(path, None, None).action == GateAction.ALLOW

    def test_identity_without_profile_is_treated_as_signed_out(self):
        assert evaluate_request("/dashboard", IDENTITY, None).location == "/login"
        # No loop: the login page stays reachable for an unknown account
        assert evaluate_request("/login", IDENTITY, None).action == GateAction.ALLOW

    @pytest.mark.parametrize("role", list(UserRole))
    @pytest.mark.parametrize("path", PROTECTED_PATHS + ["/", "/book/dr-x-1234"])
    def test_deactivated_account_is_signed_out_on_every_non_auth_path(self, role, path):
        decision = evaluate_request(path, IDENTITY, make_profile(role, is_active=False))
        assert decision.action == GateAction.DEACTIVATED
        assert decision.location == "/login?error=account_deactivated"
        assert decision.sign_out is True

    def test_deactivated_account_on_auth_page_is_not_signed_out_again(self):
        decision = evaluate_request("/login", IDENTITY, make_profile(is_active=False))
        assert decision.action != GateAction.DEACTIVATED
        assert decision.sign_out is False

    @pytest.mark.parametrize("role", list(UserRole))
    @pytest.mark.parametrize("path", PROTECTED_PATHS + AUTH_PATHS + ["/"])
    def test_must_change_password_dominates_every_other_check(self, role, path):
        decision = evaluate_request(path, IDENTITY, make_profile(role, must_change_password=True))
        assert decision.action == GateAction.CHANGE_PASSWORD
        assert decision.location == "/change-password"

    def test_must_change_password_allows_the_change_password_page(self):
        profile = make_profile(UserRole.ADMIN_CLINICAL, must_change_password=True)
        assert evaluate_request("/change-password", IDENTITY, profile).action == GateAction.ALLOW

    @pytest.mark.parametrize("role", list(UserRole))
    @pytest.mark.parametrize("path", AUTH_PATHS)
    def test_signed_in_user_on_auth_page_goes_home(self, role, path):
        decision = evaluate_request(path, IDENTITY, make_profile(role))
        assert decision.action == GateAction.ROLE_HOME
        assert decision.location == ROLE_HOME_PATHS[role]

    def test_signed_in_user_may_open_change_password_voluntarily(self):
        assert evaluate_request("/change-password", IDENTITY, make_profile()).action == GateAction.ALLOW

    @pytest.mark.parametrize("path", ["/superadmin", "/superadmin/doctors", "/admin-clinical", "/admin-clinical/settings"])
    def test_doctor_in_admin_zones_goes_to_dashboard(self, path):
        decision = evaluate_request(path, IDENTITY, make_profile(UserRole.DOCTOR))
        assert decision.action == GateAction.ROLE_HOME
        assert decision.location == "/dashboard"

    def test_admin_clinical_in_superadmin_zone_goes_home(self):
        decision = evaluate_request("/superadmin/reports", IDENTITY, make_profile(UserRole.ADMIN_CLINICAL))
        assert decision.location == "/admin-clinical"

    def test_superadmin_in_admin_clinical_zone_goes_home(self):
        decision = evaluate_request("/admin-clinical", IDENTITY, make_profile(UserRole.SUPERADMIN))
        assert decision.location == "/superadmin"

    @pytest.mark.parametrize(
        "role,path",
        [
            (UserRole.SUPERADMIN, "/superadmin/admin-clinical"),
            (UserRole.ADMIN_CLINICAL, "/admin-clinical/doctors"),
            (UserRole.DOCTOR, "/dashboard"),
            (UserRole.SUPERADMIN, "/dashboard"),
        ],
    )
    def test_role_in_permitted_zone_is_allowed(self, role, path):
        assert evaluate_request(path, IDENTITY, make_profile(role)).action == GateAction.ALLOW


class TestZones:
    def test_every_role_has_a_home(self):
        assert set(ROLE_HOME_PATHS) == set(UserRole)

    def test_every_zone_has_a_required_role_entry(self):
        assert set(ZONE_REQUIRED_ROLE) == set(Zone)

    def test_missing_role_lands_on_dashboard(self):
        assert home_path_for(None) == "/dashboard"

    def test_zone_for_path(self):
        assert zone_for_path("/superadmin/settings") == Zone.SUPERADMIN
        assert zone_for_path("/admin-clinical") == Zone.ADMIN_CLINICAL
        assert zone_for_path("/dashboard") == Zone.DEFAULT

    @pytest.mark.parametrize("path", ["/api/auth/session", "/health", "/docs", "/openapi.json", "/logo.svg"])
    def test_apis_health_docs_and_assets_are_ungated(self, path):
        assert is_ungated(path)

    def test_pages_are_gated(self):
        assert not is_ungated("/dashboard")


# ============================================================================
# RequestGateMiddleware through the app
# ============================================================================


class TestGateMiddleware:
    def test_unauthenticated_dashboard_redirects_to_login(self, client):
        response = client.get("/dashboard")
        assert response.status_code == 302
        assert response.headers["location"] == "/login"

    def test_doctor_on_login_redirects_to_dashboard(self, client, login_as):
        _, cookies = login_as(UserRole.DOCTOR)
        response = client.get("/login", headers=cookies)
        assert response.status_code == 302
        assert response.headers["location"] == "/dashboard"

    def test_superadmin_on_login_redirects_to_superadmin(self, client, login_as):
        _, cookies = login_as(UserRole.SUPERADMIN)
        response = client.get("/login", headers=cookies)
        assert response.headers["location"] == "/superadmin"

    def test_admin_clinical_with_forced_password_change(self, client, login_as):
        _, cookies = login_as(UserRole.ADMIN_CLINICAL, must_change_password=True)
        response = client.get("/admin-clinical", headers=cookies)
        assert response.status_code == 302
        assert response.headers["location"] == "/change-password"

        response = client.get("/change-password", headers=cookies)
        assert response.status_code == 200
        assert response.json()["page"] == "change-password"

    def test_doctor_in_superadmin_zone_redirects_to_dashboard(self, client, login_as):
        _, cookies = login_as(UserRole.DOCTOR)
        response = client.get("/superadmin/doctors", headers=cookies)
        assert response.headers["location"] == "/dashboard"

    def test_allowed_page_sees_viewer_profile(self, client, login_as):
        profile, cookies = login_as(UserRole.ADMIN_CLINICAL, full_name="Asha Rao")
        response = client.get("/admin-clinical", headers=cookies)
        assert response.status_code == 200
        body = response.json()
        assert body["page"] == "admin-clinical"
        assert body["viewer"]["id"] == profile.id
        assert body["viewer"]["role"] == "admin_clinical"

    def test_public_pages_need_no_session(self, client):
        assert client.get("/").status_code == 200
        assert client.get("/book/dr-jane-ab12").json()["slug"] == "dr-jane-ab12"

    def test_deactivated_account_is_signed_out(self, client, accounts, cookies_for, identity_provider):
        identity, _ = accounts.create(UserRole.DOCTOR, is_active=False)
        cookies = cookies_for(identity)

        response = client.get("/dashboard", headers=cookies)

        assert response.status_code == 302
        assert response.headers["location"] == "/login?error=account_deactivated"
        assert len(identity_provider.signed_out) == 1
        set_cookies = " ".join(response.headers.get_list("set-cookie"))
        assert f'{ACCESS_TOKEN_COOKIE}=""' in set_cookies
        assert f'{REFRESH_TOKEN_COOKIE}=""' in set_cookies

    def test_deactivated_account_on_login_page_is_not_signed_out(self, client, accounts, cookies_for, identity_provider):
        identity, _ = accounts.create(UserRole.DOCTOR, is_active=False)
        client.get("/login?error=account_deactivated", headers=cookies_for(identity))
        assert identity_provider.signed_out == []

    def test_identity_without_profile_fails_closed(self, client, identity_provider, cookies_for):
        identity = identity_provider.add_identity("orphan@example.com")
        cookies = cookies_for(identity)

        assert client.get("/dashboard", headers=cookies).headers["location"] == "/login"
        assert client.get("/login", headers=cookies).status_code == 200

    def test_profile_lookup_error_fails_closed(self, client, login_as, profile_repository):
        _, cookies = login_as(UserRole.SUPERADMIN)
        profile_repository.fail_lookup = True

        response = client.get("/superadmin", headers=cookies)
        assert response.status_code == 302
        assert response.headers["location"] == "/login"

    def test_identity_error_fails_closed(self, client, login_as, identity_provider):
        _, cookies = login_as(UserRole.DOCTOR)
        identity_provider.fail_resolve = True
        assert client.get("/dashboard", headers=cookies).headers["location"] == "/login"

    def test_refreshed_session_cookies_are_written_on_allow(self, client, accounts, cookies_for):
        identity, _ = accounts.create(UserRole.DOCTOR)
        cookies = cookies_for(identity, access=False)

        response = client.get("/dashboard", headers=cookies)

        assert response.status_code == 200
        set_cookies = " ".join(response.headers.get_list("set-cookie"))
        assert f"{ACCESS_TOKEN_COOKIE}=access-{identity.id}-" in set_cookies
        assert f"{REFRESH_TOKEN_COOKIE}=refresh-{identity.id}-" in set_cookies
        assert "HttpOnly" in set_cookies

    def test_refreshed_session_cookies_are_written_on_redirect(self, client, accounts, cookies_for):
        identity, _ = accounts.create(UserRole.DOCTOR)
        cookies = cookies_for(identity, access=False)

        response = client.get("/superadmin", headers=cookies)

        assert response.status_code == 302
        assert f"{ACCESS_TOKEN_COOKIE}=access-" in " ".join(response.headers.get_list("set-cookie"))

    def test_one_profile_lookup_per_gated_request(self, client, login_as, profile_repository):
        _, cookies = login_as(UserRole.DOCTOR)
        client.get("/dashboard", headers=cookies)
        assert profile_repository.lookups == 1

    def test_api_paths_are_not_redirected(self, client):
        response = client.get("/api/superadmin/doctors")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_redirects_carry_security_headers(self, client):
        response = client.get("/dashboard")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Cache-Control"].startswith("no-store")
