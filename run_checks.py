from fastapi.testclient import TestClient
from app.main import app

client = TestClient(app)

print('ROOT:')
print(client.get('/').json())

print('\nHEALTH:')
print(client.get('/health').json())

print('\nDB HEALTH:')
try:
    resp = client.get('/health/db')
    print(resp.status_code)
    print(resp.json())
except Exception as e:
    print('DB call raised exception:', e)

print('\nDEPARTMENTS:')
print([d['id'] for d in client.get('/departments').json()])

print('\nNEARBY (Springfield, 1 km):')
try:
    resp = client.get('/complaints/nearby', params={'latitude': 39.7392, 'longitude': -104.9903, 'radius_km': 1})
    print(resp.status_code)
    print(resp.json())
except Exception as e:
    print('Nearby call raised exception:', e)
