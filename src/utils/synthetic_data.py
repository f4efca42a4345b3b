#!/usr/bin/env python3
"""
Synthetic demo datasets.

Generates stand-ins for every raw dataset the pipelines consume, using the
raw header spellings of the real exports so the ingestion renames are
exercised end to end.

Usage
-----
    from utils.synthetic_data import SyntheticDataGenerator

    gen = SyntheticDataGenerator(seed=42)
    df = gen.generate('forest_fires')
"""
from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd


MONTHS = ['jan', 'feb', 'mar', 'apr', 'may', 'jun', 'jul', 'aug', 'sep', 'oct', 'nov', 'dec']
DAYS = ['mon', 'tue', 'wed', 'thu', 'fri', 'sat', 'sun']

# Site geology drives the ion profile; each tuple is the mean of
# (pH, conductivity, Ca, Mg, Na, K, Cl, SO4, NO3, alkalinity)
STREAM_PROFILES = {
    'carbonate': (8.1, 520.0, 85.0, 22.0, 9.0, 2.0, 14.0, 30.0, 1.5, 210.0),
    'granite': (6.6, 45.0, 4.0, 1.2, 3.5, 0.8, 3.0, 4.0, 0.3, 12.0),
    'urban': (7.4, 880.0, 60.0, 15.0, 95.0, 5.0, 160.0, 55.0, 2.5, 120.0),
    'agricultural': (7.6, 610.0, 70.0, 18.0, 25.0, 9.0, 35.0, 60.0, 9.0, 160.0),
}

POSITIVE_WORDS = [
    'good', 'great', 'hope', 'improve', 'success', 'win', 'support',
    'strong', 'benefit', 'celebrate', 'safe', 'progress',
]
NEGATIVE_WORDS = [
    'crisis', 'threat', 'loss', 'fear', 'damage', 'fail', 'risk',
    'worst', 'kill', 'disaster', 'angry', 'problem',
]
NEUTRAL_WORDS = [
    'government', 'report', 'city', 'water', 'climate', 'policy', 'year',
    'people', 'plan', 'scientists', 'region', 'council', 'data', 'river',
]
SECTIONS = {
    'Climate': 0.0,
    'Science': 0.6,
    'U.S.': -0.3,
    'World': -0.6,
    'Business': 0.3,
}

AMPHIBIAN_SPECIES = {
    'Pacific Chorus Frog': 14.0,
    'Rough-skinned Newt': 6.0,
    'Western Toad': 4.0,
    'Northern Red-legged Frog': 3.0,
    'Long-toed Salamander': 2.5,
    'American Bullfrog': 2.0,
    'Northwestern Salamander': 1.5,
    'Cascades Frog': 0.8,
}
LIFE_STAGES = ['adult', 'juvenile', 'larva', 'egg mass']


class SyntheticDataGenerator:
    """Generate reproducible demo versions of the raw datasets."""

    def __init__(self, seed: Optional[int] = 42):
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def generate(self, dataset: str, **kwargs) -> pd.DataFrame:
        """
        Generate a dataset by name.

        Raises
        ------
        ValueError
            If the dataset has no generator
        """
        generators = {
            'stream_chemistry': self.stream_chemistry,
            'news_articles': self.news_articles,
            'forest_fires': self.forest_fires,
            'oxygen': self.oxygen,
            'amphibian_surveys': self.amphibian_surveys,
        }
        if dataset not in generators:
            raise ValueError(f"No demo generator for dataset: {dataset}")
        return generators[dataset](**kwargs)

    # ------------------------------------------------------------------

    def stream_chemistry(self, n_sites: int = 24, n_samples: int = 6) -> pd.DataFrame:
        """Repeated major-ion samples at stream sites of four geology types."""
        geologies = list(STREAM_PROFILES)
        rows = []
        for i in range(n_sites):
            geology = geologies[i % len(geologies)]
            means = np.array(STREAM_PROFILES[geology])
            site_shift = self.rng.normal(1.0, 0.08, size=len(means))
            for j in range(n_samples):
                noise = self.rng.normal(1.0, 0.1, size=len(means))
                values = means * site_shift * noise
                values[0] = means[0] + self.rng.normal(0, 0.15)
                rows.append({
                    'Site ID': f'{geology[:3].upper()}-{i + 1:02d}',
                    'Sample Date': (pd.Timestamp('2021-04-01') + pd.DateOffset(months=2 * j)).strftime('%Y-%m-%d'),
                    'pH': round(values[0], 2),
                    'Conductivity (uS/cm)': round(values[1], 1),
                    'Ca (mg/L)': round(values[2], 2),
                    'Mg (mg/L)': round(values[3], 2),
                    'Na (mg/L)': round(values[4], 2),
                    'K (mg/L)': round(values[5], 2),
                    'Cl (mg/L)': round(values[6], 2),
                    'SO4 (mg/L)': round(values[7], 2),
                    'NO3 (mg/L)': round(values[8], 3),
                    'Alkalinity (mg/L)': round(values[9], 1),
                    'Field Notes': 'turbid after storm' if self.rng.random() < 0.05 else None,
                })
        df = pd.DataFrame(rows)

        # Scattered lab gaps
        for col in ['K (mg/L)', 'NO3 (mg/L)']:
            mask = self.rng.random(len(df)) < 0.04
            df.loc[mask, col] = np.nan
        return df

    def news_articles(self, n_articles: int = 150) -> pd.DataFrame:
        """Article search results with sentiment-bearing snippets."""
        sections = list(SECTIONS)
        start = pd.Timestamp('2023-01-01')
        rows = []
        for i in range(n_articles):
            section = sections[i % len(sections)]
            tone = SECTIONS[section] + self.rng.normal(0, 0.5)
            p_pos = float(np.clip(0.5 + tone / 2, 0.1, 0.9))

            def sentence(n_words):
                words = []
                for _ in range(n_words):
                    if self.rng.random() < 0.3:
                        pool = POSITIVE_WORDS if self.rng.random() < p_pos else NEGATIVE_WORDS
                    else:
                        pool = NEUTRAL_WORDS
                    words.append(pool[self.rng.integers(len(pool))])
                return ' '.join(words).capitalize() + '.'

            pub = start + pd.Timedelta(days=int(self.rng.integers(0, 365)), hours=int(self.rng.integers(0, 24)))
            rows.append({
                '_id': f'nyt://article/{i:05d}',
                'headline.main': sentence(8),
                'abstract': sentence(18),
                'lead_paragraph': sentence(30) if self.rng.random() > 0.05 else None,
                'pub_date': pub.strftime('%Y-%m-%dT%H:%M:%S+0000'),
                'section_name': section,
                'web_url': f'https://www.example.com/{pub:%Y/%m/%d}/article-{i:05d}.html',
            })
        return pd.DataFrame(rows)

    def forest_fires(self, n_fires: int = 517) -> pd.DataFrame:
        """Fire records in the UCI Montesinho layout."""
        month_weights = np.array([2, 20, 54, 9, 2, 17, 32, 184, 172, 15, 1, 9], dtype=float)
        month = self.rng.choice(MONTHS, size=n_fires, p=month_weights / month_weights.sum())
        summer = np.isin(month, ['jun', 'jul', 'aug', 'sep'])

        temp = np.where(summer, self.rng.normal(22, 4.5, n_fires), self.rng.normal(12, 5, n_fires))
        rh = np.clip(self.rng.normal(60 - 0.9 * temp, 12), 15, 100)
        wind = np.clip(self.rng.normal(4.0, 1.8, n_fires), 0.4, 9.4)
        rain = np.where(self.rng.random(n_fires) < 0.03, self.rng.exponential(0.8, n_fires), 0.0)
        ffmc = np.clip(self.rng.normal(90.5, 4, n_fires), 18.7, 96.2)
        dmc = np.clip(self.rng.normal(np.where(summer, 130, 40), 45), 1.1, 291.3)
        dc = np.clip(self.rng.normal(np.where(summer, 650, 150), 160), 7.9, 860.6)
        isi = np.clip(self.rng.normal(9.0, 4.0, n_fires), 0.0, 56.1)

        # About half the fires burn < 1 ha (recorded as 0)
        signal = 0.06 * (temp - 19) - 0.02 * (rh - 44) + 0.1 * (wind - 4) + 0.004 * (dmc - 110)
        burned = self.rng.random(n_fires) < 0.52 + 0.1 * np.tanh(signal)
        log_area = np.maximum(0.0, 1.2 + signal + self.rng.normal(0, 1.2, n_fires))
        area = np.where(burned, np.round(np.expm1(log_area), 2), 0.0)

        return pd.DataFrame({
            'X': self.rng.integers(1, 10, n_fires),
            'Y': self.rng.integers(2, 10, n_fires),
            'month': month,
            'day': self.rng.choice(DAYS, size=n_fires),
            'FFMC': ffmc.round(1),
            'DMC': dmc.round(1),
            'DC': dc.round(1),
            'ISI': isi.round(1),
            'temp': temp.round(1),
            'RH': rh.round(0),
            'wind': wind.round(1),
            'rain': rain.round(1),
            'area': area,
        })

    def oxygen(self, n_obs: int = 240) -> pd.DataFrame:
        """Dissolved oxygen saturation with physical and chemical covariates."""
        seasons = ['winter', 'spring', 'summer', 'fall']
        season_temp = {'winter': 5.0, 'spring': 12.0, 'summer': 21.0, 'fall': 13.0}
        season_effect = {'winter': 2.0, 'spring': 4.0, 'summer': -3.0, 'fall': 0.0}
        sites = [f'WQ{i:02d}' for i in range(1, 9)]

        season = self.rng.choice(seasons, size=n_obs)
        temperature = np.array([season_temp[s] for s in season]) + self.rng.normal(0, 2.5, n_obs)
        flow = np.clip(self.rng.lognormal(4.0, 0.7, n_obs), 5, None)
        conductivity = self.rng.normal(350, 80, n_obs)
        ph = self.rng.normal(7.4, 0.35, n_obs)
        turbidity = np.clip(self.rng.lognormal(1.5, 0.6, n_obs), 0.5, None)
        nitrate = np.clip(self.rng.normal(1.8, 0.9, n_obs), 0.05, None)

        do_sat = (
            104.0
            - 0.9 * temperature
            + 0.03 * flow
            - 2.5 * nitrate
            + np.array([season_effect[s] for s in season])
            + self.rng.normal(0, 3.5, n_obs)
        )

        df = pd.DataFrame({
            'Site': self.rng.choice(sites, size=n_obs),
            'Season': season,
            'DO (% sat)': do_sat.round(1),
            'Water Temp (C)': temperature.round(2),
            'Specific Conductance': conductivity.round(0),
            'pH': ph.round(2),
            'Turbidity (NTU)': turbidity.round(2),
            'Discharge (cfs)': flow.round(1),
            'Nitrate (mg/L)': nitrate.round(2),
        })

        # Sensor outages
        mask = self.rng.random(n_obs) < 0.03
        df.loc[mask, 'Turbidity (NTU)'] = np.nan
        return df

    def amphibian_surveys(
        self,
        n_sites: int = 10,
        years: tuple[int, int] = (2015, 2022),
        surveys_per_year: int = 3,
    ) -> pd.DataFrame:
        """Visual encounter survey counts by site, species and life stage."""
        sites = [f'POND-{i:02d}' for i in range(1, n_sites + 1)]
        rows = []
        for site in sites:
            site_factor = self.rng.lognormal(0, 0.4)
            present = [s for s in AMPHIBIAN_SPECIES if self.rng.random() < 0.8]
            for year in range(years[0], years[1] + 1):
                trend = 1.0 - 0.04 * (year - years[0])
                for k in range(surveys_per_year):
                    date = pd.Timestamp(year=year, month=3 + 2 * k, day=int(self.rng.integers(1, 28)))
                    for species in present:
                        lam = AMPHIBIAN_SPECIES[species] * site_factor * trend
                        count = int(self.rng.poisson(lam))
                        if count == 0 and self.rng.random() < 0.5:
                            continue
                        rows.append({
                            'Survey Date': date.strftime('%Y-%m-%d'),
                            'Site Code': site,
                            'Common Name': species,
                            'Life Stage': LIFE_STAGES[int(self.rng.integers(len(LIFE_STAGES)))],
                            'Number Observed': count,
                        })
        return pd.DataFrame(rows)
