import sys

import requests

BASE_URL = "http://localhost:8000"


def data_of(response):
    return response.json().get("data") or {}


# 1. Login as Admin
print("\n--- 1. Logging in as ADMIN001 ---")
response = requests.post(
    f"{BASE_URL}/api/auth/login",
    json={"employee_id": "ADMIN001", "password": "admin123!"},
)
if response.status_code != 200:
    print(f"Admin login failed: {response.text}")
    sys.exit(1)
login = data_of(response)
print(f"Logged in as {login['user']['full_name']} ({login['user']['role']})")
headers = {"Authorization": f"Bearer {login['access_token']}"}

# 2. Permission-gated call
print("\n--- 2. Creating a program (create_program) ---")
response = requests.post(
    f"{BASE_URL}/api/programs",
    json={"name": "Session smoke program", "description": "created by simulate_session.py"},
    headers=headers,
)
if response.status_code == 201:
    print("Program created.")
elif response.status_code == 409:
    print("Program already exists, proceeding...")
else:
    print(f"Program creation failed: {response.text}")
    sys.exit(1)

# 3. Rotate
print("\n--- 3. Refreshing the session ---")
response = requests.post(f"{BASE_URL}/api/auth/refresh", json={"refresh_token": login["refresh_token"]})
if response.status_code != 200:
    print(f"Refresh failed: {response.text}")
    sys.exit(1)
rotated = data_of(response)
print(f"New refresh token differs from the original: {rotated['refresh_token'] != login['refresh_token']}")

# 4. Replay the consumed token
print("\n--- 4. Replaying the original refresh token ---")
response = requests.post(f"{BASE_URL}/api/auth/refresh", json={"refresh_token": login["refresh_token"]})
if response.status_code == 401:
    print("Replay rejected as expected.")
else:
    print(f"UNEXPECTED: replay returned {response.status_code}: {response.text}")
    sys.exit(1)

# 5. Logout (twice, both acknowledged)
print("\n--- 5. Logging out ---")
for attempt in (1, 2):
    response = requests.post(f"{BASE_URL}/api/auth/logout", json={"refresh_token": rotated["refresh_token"]})
    print(f"Logout attempt {attempt}: {response.status_code}")

response = requests.post(f"{BASE_URL}/api/auth/refresh", json={"refresh_token": rotated["refresh_token"]})
print(f"Refresh after logout: {response.status_code} (expected 401)")
