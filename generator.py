import time
import random
import logging
from typing import List, Dict

import requests
from faker import Faker

from progress.client import ProgressClient, ProgressAPIError

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

GOAL_THEMES = ["Спорт", "Здоровье", "Образование", "Карьера", "Финансы", "Творчество",
               "Языки", "Музыка", "Программирование", "Кулинария", "Чтение", "Медитация"]

BACKGROUND_COLORS = ["#e0f2fe", "#fef3c7", "#dcfce7", "#fce7f3", "#ede9fe", None]


class DemoDataGenerator:
    def __init__(self, base_url: str = "http://127.0.0.1:8080/api", admin_token: str = None):
        self.base_url = base_url.rstrip('/')
        self.admin_token = admin_token
        self.fake = Faker('ru_RU')

        self.created_users: List[Dict] = []
        self.created_goals: List[Dict] = []
        self.created_subgoals: List[Dict] = []
        self.applied_updates = 0

    def make_client(self, token=None):
        return ProgressClient(base_url=self.base_url, token=token)

    def generate_users(self, count=20):
        logger.info(f"Generating {count} users...")

        used_usernames = set()
        while len(self.created_users) < count:
            username = f"{self.fake.user_name()}{random.randint(1000, 9999)}".replace('.', '_').replace('-', '_')
            if username in used_usernames:
                continue
            used_usernames.add(username)

            password = f"{self.fake.password(length=10, special_chars=False)}Aa1"
            client = self.make_client()

            try:
                client.register(username, password)
                client.login(username, password)
            except ProgressAPIError as e:
                logger.error(f"Failed to create user {username}: {e}")
                continue

            self.created_users.append({'username': username, 'client': client})

        logger.info(f"Generated {len(self.created_users)} users")
        return self.created_users

    def generate_goals(self, per_user=5):
        if not self.created_users:
            raise ValueError("Need users first")

        logger.info(f"Generating {per_user} goals per user...")

        for user in self.created_users:
            client = user['client']
            for _ in range(per_user):
                counting = random.choice(["direct", "subgoals"])
                goal = {
                    "title": f"{random.choice(GOAL_THEMES)}: {self.fake.sentence(nb_words=3)[:-1]}",
                    "kind": random.choice(["one_time", "recurring"]),
                    "counting": counting,
                    "target_count": random.randint(2, 6) if counting == "subgoals" else random.randint(5, 30),
                    "background_color": random.choice(BACKGROUND_COLORS)
                }

                try:
                    created = client.create_goal(**goal)
                except ProgressAPIError as e:
                    logger.error(f"Failed to create goal for {user['username']}: {e}")
                    continue

                created['client'] = client
                self.created_goals.append(created)

        logger.info(f"Generated {len(self.created_goals)} goals")
        return self.created_goals

    def generate_subgoals(self, max_per_goal=6):
        goals = [goal for goal in self.created_goals if goal['counting'] == 'subgoals']
        if not goals:
            raise ValueError("Need goals counted by subgoals first")

        logger.info(f"Generating subgoals for {len(goals)} goals...")

        for goal in goals:
            client = goal['client']
            for _ in range(random.randint(1, max_per_goal)):
                subgoal = {
                    "title": self.fake.sentence(nb_words=random.randint(2, 5))[:-1],
                    "kind": random.choice(["one_time", "recurring"]),
                    "target_count": random.randint(1, 10)
                }

                try:
                    created = client.create_subgoal(goal['id'], **subgoal)
                except ProgressAPIError as e:
                    logger.error(f"Failed to create subgoal for goal {goal['id']}: {e}")
                    continue

                created['client'] = client
                self.created_subgoals.append(created)

        logger.info(f"Generated {len(self.created_subgoals)} subgoals")
        return self.created_subgoals

    def generate_progress(self, updates=300):
        if not self.created_goals:
            raise ValueError("Need goals first")

        logger.info(f"Applying {updates} progress updates...")

        direct_goals = [goal for goal in self.created_goals if goal['counting'] == 'direct']

        for i in range(updates):
            try:
                if self.created_subgoals and (not direct_goals or random.random() > 0.4):
                    subgoal = random.choice(self.created_subgoals)
                    client = subgoal['client']
                    if random.random() > 0.2:
                        client.increment_subgoal(subgoal['id'], random.randint(1, 3))
                    else:
                        client.decrement_subgoal(subgoal['id'])
                else:
                    goal = random.choice(direct_goals)
                    goal['client'].increment_goal(goal['id'], random.randint(1, 4))
            except ProgressAPIError as e:
                logger.error(f"Progress update failed: {e}")
                continue

            self.applied_updates += 1
            if (i + 1) % 100 == 0:
                logger.info(f"Applied {i + 1}/{updates} updates")

        logger.info(f"Applied {self.applied_updates} progress updates")
        return self.applied_updates

    def run_rollover(self):
        if not self.admin_token:
            logger.warning("No admin token, rollover skipped")
            return None

        result = self.make_client(self.admin_token).rollover()
        logger.info(
            f"Rollover {result['currentPeriod']} -> {result['nextPeriod']}: "
            f"deleted {result['deletedSubgoals']}, reset {result['resetSubgoals']}, failed {result['failed']}"
        )
        return result

    def generate_all_data(self, rollover=False):
        logger.info("Starting data generation...")
        logger.info(f"Using base URL: {self.base_url}")

        start_time = time.time()

        try:
            self.generate_users()

            self.generate_goals()

            self.generate_subgoals()

            self.generate_progress()

            if rollover:
                self.run_rollover()

            elapsed_time = time.time() - start_time
            logger.info(f"Data generation completed in {elapsed_time:.2f} seconds")

        except Exception as e:
            logger.error(f"Error during data generation: {e}")
            raise


def check_connection(base_url):
    print(f"Checking connection to {base_url}...")

    url = f"{base_url.rstrip('/')}/progress/period/"
    try:
        response = requests.get(url, timeout=5)
    except requests.exceptions.ConnectionError:
        print(f"{url}: Connection failed")
        return False

    print(f"{url}: Server is responding (status {response.status_code})")
    return True


def main():
    BASE_URL = "http://127.0.0.1:8080/api"
    ADMIN_TOKEN = None

    if not check_connection(BASE_URL):
        print("\nCannot connect to server.")
        print("Please make sure:")
        print("1. Django server is running: python manage.py runserver 8080")
        print("2. Server is accessible at: http://127.0.0.1:8080")
        return

    print("\nConnection successful!")

    generator = DemoDataGenerator(base_url=BASE_URL, admin_token=ADMIN_TOKEN)

    try:
        generator.generate_all_data(rollover=ADMIN_TOKEN is not None)
        print("\n Data generation completed successfully!")
        print("\n" + "=" * 60)
        print("FINAL SUMMARY:")
        print("=" * 60)
        print(f"Users created: {len(generator.created_users)}")
        print(f"Goals created: {len(generator.created_goals)}")
        print(f"Subgoals created: {len(generator.created_subgoals)}")
        print(f"Progress updates applied: {generator.applied_updates}")
        print("=" * 60)

    except KeyboardInterrupt:
        print("\nData generation interrupted by user")
    except (ProgressAPIError, ValueError) as e:
        print(f"\nError: {e}")


if __name__ == "__main__":
    main()
