# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""Prompt templates for the coach persona and the photo/video pipelines."""

COACH_SYSTEM_PROMPT = """# ROLE: Bebek AI Lead Health Coach
Sen, Bebek AI uygulamasının profesyonel, empatik, bilimsel temelli ve motive edici yapay zeka sağlık koçusun. Kullanıcıların beslenme, fitness ve genel sağlık hedeflerine ulaşmalarını sağlarsın.

# PERSONALITY TRAITS:
- Destekleyici ama Gerçekçi: Kullanıcı hata yaptığında suçlayıcı değil, çözüm odaklı yaklaş.
- Witty (Nüktedan): Hafif espriler ve samimi bir ton kullan ama ciddiyeti elden bırakma.
- Kısa ve Öz: Uzun metinler yazma; taranabilir, maddeli cevaplar ver.

# KNOWLEDGE BASE & DATA INTERPRETATION:
1) User Profile: Yaş, boy, hedefe göre tavsiye ver.
2) Daily Progress: Makro dengesine bak; eksik makroları öner.
3) Memory Summary: Eski alışkanlıkları hatırla ve kişiselleştir.

# RESPONSE GUIDELINES:
- Tıbbi teşhis koyma; gerekli durumda doktora yönlendir.
- Birimler: Kullanıcının tercih ettiği birimleri kullan.
- Eylem odaklı ol: Küçük bir Next Step öner.
- Format: Önemli kelimeleri kalın yap, gerektiğinde madde kullan.

# CRITICAL RULES:
- Kullanıcı "Kaç kalori aldım?" derse ve veri varsa net cevap ver.
- Eğer kullanıcı aşırı düşük kalori/zararlı diyet isterse nazikçe uyar ve sağlıklı sınırları hatırlat.
- Sadece Bebek AI sağlık/kalori koçu olarak yanıt ver. Görsel üretme, kod yazma, dosya hazırlama gibi koçluk dışı talepleri reddet ve şu cümleyle bitir: "Ben bir Bebek AI kalori koçuyum, bu isteği yerine getiremiyorum.\""""

COACH_REFUSAL_MESSAGE = (
    "Bu istegi burada dogrudan yerine getiremiyorum, alternatif bir yol onerebilirim."
)

IMAGE_ONLY_TURN_TEXT = "Kullanıcı bir görsel paylaştı."

SUMMARY_PROMPT = (
    "Aşağıdaki konuşmayı 3-4 cümlelik kısa bir hafıza özeti olarak yaz.\n\n{transcript}"
)

SOURCE_BABY_IMAGE_LABEL = "SOURCE BABY IMAGE (PRIMARY IDENTITY REFERENCE):"
SCENE_TEMPLATE_IMAGE_LABEL = (
    "SCENE REFERENCE IMAGE (composition, props and lighting only, never identity):"
)

NEWBORN_SCENE_PROMPT = """TASK: Scene adaptation with strict identity preservation.

You are given:
1) SOURCE IMAGE -> This contains the real baby. Use this as the ONLY identity reference.
2) SCENE BRIEF -> This text defines desired pose, framing, distance, lighting and environment.

SCENE BRIEF:
{scene_brief}

GOAL:
Place the SOURCE baby into the requested scene.

STRICT IDENTITY RULES:
- Preserve the SOURCE baby exact face.
- Keep original facial structure, head ratio, hairline, eyes, nose, lips, skin tone, expression structure, and baby proportions.
- Do NOT generate a new baby.
- Do NOT reinterpret the face.
- Do NOT beautify or stylize identity.
- The baby must remain 100% recognizable as the SOURCE baby.

SCENE ADAPTATION RULES:
- Match requested pose and camera distance from SCENE BRIEF.
- Match lighting direction and softness.
- Match depth of field and background blur.
- If scene suggests subject farther from camera, keep that distance naturally.
- Preserve realistic newborn skin texture and natural body proportions.

PRIORITY:
- If any conflict occurs, ALWAYS prioritize SOURCE identity over scene styling.

OUTPUT:
- Professional studio photograph look.
- Ultra realistic.
- No identity change.
- Return exactly one final image."""

VIDEO_MOTION_PROMPT = (
    "Gentle, natural baby motion. Keep the baby's face, skin tone and proportions "
    "exactly as in the source image. Soft camera movement, no cuts, no text. "
    "{prompt}"
)

VIDEO_BACKGROUND_PROMPT = (
    "Replace only the background behind the baby with: {background}. "
    "Keep the baby, its motion and lighting on the face unchanged."
)


def make_coach_system_instruction(context: str) -> str:
    return f"{COACH_SYSTEM_PROMPT}\n\nCONTEXT:\n{context}"


def make_newborn_scene_prompt(scene_brief: str) -> str:
    return NEWBORN_SCENE_PROMPT.format(scene_brief=scene_brief)


def make_summary_prompt(transcript: str) -> str:
    return SUMMARY_PROMPT.format(transcript=transcript)


def make_video_motion_prompt(prompt: str) -> str:
    return VIDEO_MOTION_PROMPT.format(prompt=prompt.strip()).strip()


def make_video_background_prompt(background: str) -> str:
    return VIDEO_BACKGROUND_PROMPT.format(background=background.strip())
