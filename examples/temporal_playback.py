import time

import numpy as np

import heatfield


def main() -> None:
    server = heatfield.run(new_server=True)
    client = server.client()

    rng = np.random.default_rng(1)
    n = 5_000
    t = np.sort(rng.uniform(0, 60_000, size=n))
    # A hot spot drifting across the canvas over one minute.
    x = 100.0 + 600.0 * (t / 60_000) + rng.normal(scale=30.0, size=n)
    y = 300.0 + 150.0 * np.sin(t / 6_000) + rng.normal(scale=30.0, size=n)
    v = rng.uniform(0.2, 1.0, size=n)

    points = [
        {"x": float(xi), "y": float(yi), "value": float(vi), "timestamp": float(ti)}
        for xi, yi, vi, ti in zip(x, y, v, t)
    ]
    dataset = {"startTime": 0, "endTime": 60_000, "min": 0.0, "points": points}
    server.service.call(lambda hm: hm.set_data(dataset))
    client.set_playback_speed(4.0)
    client.set_loop(True)
    client.play()

    try:
        while True:
            status = client.get_animation()
            print(f"{status['state']:8s} t={status['currentTime']:8.0f} progress={status['progress']:.2f}")
            time.sleep(1.0)
    except KeyboardInterrupt:
        server.shutdown()


if __name__ == "__main__":
    main()
